import re

USERNAME_RE = re.compile(r'^[A-Za-z0-9_.-]+$')
PHONE_RE = re.compile(r'^\+?[0-9 ()-]{6,20}$')

def validate_password_strength(v: str) -> str:
    if not re.search(r'[A-Z]', v):
        raise ValueError('Password must contain at least one uppercase letter')
    if not re.search(r'[a-z]', v):
        raise ValueError('Password must contain at least one lowercase letter')
    if not re.search(r'\d', v):
        raise ValueError('Password must contain at least one digit')
    if not re.search(r'[!@#$%^&*()_+\-=\[\]{};:\'\"\\|,.<>\/?]', v):
        raise ValueError('Password must contain at least one special character')
    return v

def validate_username(v: str) -> str:
    v = (v or "").strip()
    if len(v) < 3:
        raise ValueError('Username must be at least 3 characters long')
    if not USERNAME_RE.match(v):
        raise ValueError('Username may only contain letters, digits, "_", "." and "-"')
    return v

def validate_contact_number(v: str) -> str:
    v = (v or "").strip()
    if not PHONE_RE.match(v):
        raise ValueError('Contact number is not valid')
    return v

def validate_verification_code(v: str) -> str:
    v = (v or "").strip()
    if not re.fullmatch(r'\d{6}', v):
        raise ValueError('Verification code must be 6 digits')
    return v
