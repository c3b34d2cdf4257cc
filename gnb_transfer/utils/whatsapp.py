import re
from typing import Optional


def build_whatsapp_link(phone: Optional[str], country_code: Optional[str] = '+90') -> Optional[str]:
    """Build a wa.me click-to-chat link, or None when there is no usable number"""
    if not phone:
        return None

    digits = re.sub(r'\D', '', phone)
    if not digits:
        return None

    # Numbers typed in international form already carry their country code
    if phone.strip().startswith('+'):
        return f"https://wa.me/{digits}"

    code = re.sub(r'\D', '', country_code or '')
    return f"https://wa.me/{code}{digits.lstrip('0')}"
