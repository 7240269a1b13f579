from __future__ import annotations

import re
import secrets
import time
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


CRORE = 10_000_000
LAKH = 100_000

# Signed 64-bit: the widest INTEGER any supported backend stores.
MAX_DB_INT = 2**63 - 1
MAX_PAGE = 100_000

INDIAN_STATES = [
    "Andhra Pradesh", "Arunachal Pradesh", "Assam", "Bihar", "Chhattisgarh",
    "Goa", "Gujarat", "Haryana", "Himachal Pradesh", "Jharkhand", "Karnataka",
    "Kerala", "Madhya Pradesh", "Maharashtra", "Manipur", "Meghalaya", "Mizoram",
    "Nagaland", "Odisha", "Punjab", "Rajasthan", "Sikkim", "Tamil Nadu",
    "Telangana", "Tripura", "Uttar Pradesh", "Uttarakhand", "West Bengal",
    "Delhi", "Puducherry", "Chandigarh", "Dadra and Nagar Haveli", "Daman and Diu",
    "Lakshadweep", "Ladakh", "Jammu and Kashmir",
]

MAJOR_CITIES = [
    "Mumbai", "Delhi", "Bangalore", "Hyderabad", "Ahmedabad", "Chennai",
    "Kolkata", "Surat", "Pune", "Jaipur", "Lucknow", "Kanpur", "Nagpur",
    "Indore", "Thane", "Bhopal", "Visakhapatnam", "Pimpri-Chinchwad",
    "Patna", "Vadodara", "Ghaziabad", "Ludhiana", "Agra", "Nashik",
    "Faridabad", "Meerut", "Rajkot", "Kalyan-Dombivali", "Vasai-Virar",
    "Varanasi", "Srinagar", "Dhanbad", "Jodhpur", "Amritsar", "Raipur",
    "Allahabad", "Coimbatore", "Jabalpur", "Gwalior", "Vijayawada",
    "Madurai", "Gurgaon", "Navi Mumbai", "Aurangabad", "Solapur",
    "Ranchi", "Howrah", "Jalandhar", "Tiruchirappalli", "Bhubaneswar",
]

_PHONE_RE = re.compile(r"^(\+91[\-\s]?)?[0]?(91)?[789]\d{9}$")
_PINCODE_RE = re.compile(r"^[1-9][0-9]{5}$")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def format_price(price: Any) -> str:
    """Indian currency display: 1.5 Cr, 45 L, 12K."""
    try:
        value = float(price)
    except (TypeError, ValueError):
        return "₹0"
    if value != value or not value:
        return "₹0"
    if value >= CRORE:
        return f"₹{value / CRORE:.1f} Cr"
    if value >= LAKH:
        return f"₹{value / LAKH:.0f} L"
    if value >= 1000:
        return f"₹{value / 1000:.0f}K"
    return f"₹{value:g}"


def generate_slug(title: str, id_: Any) -> str:
    s = (title or "").lower()
    s = re.sub(r"[^a-z0-9\s]", "", s)
    s = re.sub(r"\s+", "-", s)
    s = re.sub(r"-+", "-", s).strip()
    return f"{s[:50]}-{id_}"


def calculate_emi(principal: float, rate: float, tenure: float) -> float:
    """
    Monthly instalment for `principal` at `rate` percent per annum over `tenure` years.
    """
    monthly_rate = rate / 12 / 100
    months = tenure * 12
    if months <= 0:
        raise ValueError("tenure must be positive")
    if monthly_rate == 0:
        return principal / months
    growth = (1 + monthly_rate) ** months
    return round(principal * monthly_rate * growth / (growth - 1))


def validate_phone(phone: str) -> bool:
    return bool(_PHONE_RE.match(phone or ""))


def validate_pincode(pincode: str) -> bool:
    return bool(_PINCODE_RE.match(pincode or ""))


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = ""
    while n:
        n, r = divmod(n, 36)
        out = _BASE36[r] + out
    return out


def generate_property_id() -> str:
    timestamp = _base36(int(time.time() * 1000))
    random_part = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"SAR{timestamp}{random_part}".upper()


def _in_range(value: int) -> int:
    if abs(value) > MAX_DB_INT:
        raise ValueError("number out of range")
    return value


def coerce_int(value: Any) -> int | None:
    """
    Parse a count that clients send as either a number or a string ("2", "2 BHK", "3+").
    Blank values become None; anything without a leading integer is rejected.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("must be a number")
    if isinstance(value, int):
        return _in_range(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("must be a whole number")
        return _in_range(int(value))
    s = str(value).strip()
    if not s:
        return None
    m = _LEADING_INT_RE.match(s)
    if not m:
        raise ValueError("must be a number")
    return _in_range(int(m.group(1)))


def get_pagination(page: Any = 1, limit: Any = 10) -> tuple[int, int, int]:
    """Returns (current_page, per_page, skip)."""
    try:
        current_page = min(MAX_PAGE, max(1, int(page)))
    except (TypeError, ValueError):
        current_page = 1
    try:
        per_page = min(50, max(1, int(limit)))
    except (TypeError, ValueError):
        per_page = 10
    return current_page, per_page, (current_page - 1) * per_page


def email_analysis(email: str) -> dict[str, int]:
    total = sum(int(d) for d in re.findall(r"\d", email or ""))
    return {"totalDigitsSum": total}


def api_response(
    status_code: int,
    success: bool,
    message: str | None = None,
    data: Any = None,
    extra: dict[str, Any] | None = None,
) -> JSONResponse:
    body: dict[str, Any] = {"success": success}
    if message is not None:
        body["message"] = message
    body.update(extra or {})
    if data is not None:
        body["data"] = data
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def success_response(
    message: str | None = None,
    data: Any = None,
    *,
    status_code: int = 200,
    **extra: Any,
) -> JSONResponse:
    return api_response(status_code, True, message, data, extra)


def error_response(status_code: int = 500, message: str = "Server Error", data: Any = None) -> JSONResponse:
    return api_response(status_code, False, message, data)
