"""
orderdesk/security.py

Access control helpers for the order desk API.

Key rules:
- Clients are never trusted; all permission checks are server-side.
- Admin: full access, negotiates on the owner's side.
- Owner: sees every order, negotiates as owner.
- Vendor: sees only orders (and invoices) addressed to them, negotiates as vendor.

IMPORTANT:
- Decorators preserve wrapped function metadata to avoid Flask endpoint collisions.
  We use functools.wraps everywhere.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Tuple

from flask import jsonify
from flask_login import current_user

from .core.taxonomy import OWNER, VENDOR


def forbidden(message: str = "You do not have access to this resource."):
    """Consistent JSON 403 body."""
    return jsonify({"success": False, "error": {"code": "forbidden", "message": message}}), 403


def is_admin() -> bool:
    return bool(current_user.is_authenticated and getattr(current_user, "is_admin", False))


def is_vendor() -> bool:
    return bool(current_user.is_authenticated and getattr(current_user, "is_vendor", False))


def actor_for(user: Any) -> str:
    """Negotiation side for a user."""
    return VENDOR if getattr(user, "is_vendor", False) else OWNER


def can_see_vendor_data(vendor_id: Any) -> bool:
    """Vendors only see their own rows; everybody else sees all."""
    if not current_user.is_authenticated:
        return False
    if not is_vendor():
        return True
    return vendor_id is not None and str(vendor_id) == str(current_user.id)


def role_required(*roles: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator factory: restrict a view to the given roles (admin always passes).

    Usage:
        @role_required("owner")
        def create_order(): ...
    """
    def decorator(view_func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view_func)
        def wrapper(*args: Any, **kwargs: Any):
            if not current_user.is_authenticated:
                return forbidden()
            if not (is_admin() or current_user.role in roles):
                return forbidden()
            return view_func(*args, **kwargs)

        return wrapper

    return decorator


def order_access_required(get_order_func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator factory: VIEW/ACT permission for a purchase order.

    The loader receives the view kwargs and must raise (or 404) for unknown ids.
    Vendors are allowed only on orders where order.vendor_id == their user id.

    Usage:
        @order_access_required(lambda order_id: _load_order(order_id))
        def order_detail(order_id): ...
    """
    def decorator(view_func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view_func)
        def wrapper(*args: Any, **kwargs: Any):
            order = get_order_func(**kwargs)
            if not can_see_vendor_data(getattr(order, "vendor_id", None)):
                return forbidden()
            return view_func(*args, **kwargs)

        return wrapper

    return decorator


def unauthorized() -> Tuple[Any, int]:
    return jsonify({"success": False, "error": {"code": "unauthorized", "message": "Login required."}}), 401
