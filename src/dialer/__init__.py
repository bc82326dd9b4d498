"""
Outbound IVR dialer: places calls through a telephony provider and keeps
one reconciled record per call from the provider's webhook stream.
"""

__version__ = "0.1.0"
