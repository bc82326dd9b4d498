"""
Voice menu (TwiML) served to the callee when the call connects.
"""

from dialer.calls.models import Department

COMPANY_NAME = "Lodha Group"

FALLBACK_TWIML = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    "<Response><Say>We are unable to process your call right now. Goodbye.</Say></Response>"
)


def _xml_escape(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def _twiml(s: str) -> str:
    return '<?xml version="1.0" encoding="UTF-8"?>\n<Response>\n' + s + "\n</Response>"


def build_voice_menu(
    customer_name: str | None,
    department: str | None,
    action_url: str = "/call-status",
) -> str:
    """Build the one-digit IVR menu.

    The digit pressed is posted to action_url as ``Digits`` together with
    the call's CallSid and status.
    """
    name = (customer_name or "").strip() or "Customer"
    dept = (department or "").strip() or Department.SALES.value

    greeting = (
        f"Hello {name}, this is an automated call from {COMPANY_NAME}. "
        "This call is regarding your requirements."
    )
    options = (
        "If you are interested, press 1. To schedule a call later, press 2. "
        "If not interested, press 3."
    )
    goodbye = (
        f"Thank you from the {dept} team at {COMPANY_NAME}. "
        "We will reach out to you shortly. Goodbye."
    )

    return _twiml(
        f'<Gather numDigits="1" action="{_xml_escape(action_url)}" method="POST">\n'
        f"<Say>{_xml_escape(greeting)}</Say>\n"
        f"<Say>{_xml_escape(options)}</Say>\n"
        "</Gather>\n"
        f"<Say>{_xml_escape(goodbye)}</Say>"
    )
