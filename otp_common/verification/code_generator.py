# otp_common/verification/code_generator.py
import re
import secrets

CODE_MIN = 100000
CODE_MAX = 999999

_CODE_PATTERN = re.compile(r"[0-9]{6}")


def generate_code() -> str:
    """Return a 6-digit code drawn uniformly from [100000, 999999]"""
    return str(secrets.randbelow(CODE_MAX - CODE_MIN + 1) + CODE_MIN)


def is_valid_code_format(value) -> bool:
    """True if `value` is a string of exactly six ASCII digits"""
    return isinstance(value, str) and bool(_CODE_PATTERN.fullmatch(value))
