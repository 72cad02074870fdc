def normalize_email(email: str | None) -> str | None:
    if not email:
        return None
    return email.strip().lower()


def normalize_mobile(raw: str | None) -> str | None:
    """Return a Taiwanese mobile number as ``+8869XXXXXXXX``.

    Accepts ``0912345678``, ``0912-345-678``, ``+886912345678`` and
    ``886912345678``. Anything else is returned stripped but otherwise
    unchanged so foreign numbers are kept as entered.
    """
    if not raw:
        return None
    digits = "".join(ch for ch in raw if ch.isdigit())
    if len(digits) == 10 and digits.startswith("09"):
        return "+886" + digits[1:]
    if len(digits) == 12 and digits.startswith("8869"):
        return "+" + digits
    return raw.strip()


def parse_int(raw: str | None, default: int | None = None) -> int | None:
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default
