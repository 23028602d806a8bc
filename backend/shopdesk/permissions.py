"""
Role-based permission policy.

Every permission code maps to the roles allowed to use it. Admin holds
every permission; routes only ever ask for a code, never for a role.
"""

from .models import ROLES


# =============================================================================
# PERMISSION DEFINITIONS
# =============================================================================

# code -> roles granted (admin is implicit)
ROLE_PERMISSIONS: dict[str, tuple[str, ...]] = {
    # Catalog and stock
    "VIEW_PRODUCTS": ("cashier", "stock", "viewer"),
    "MANAGE_PRODUCTS": ("stock",),
    "VIEW_STOCK": ("cashier", "stock", "viewer"),
    "MANAGE_STOCK": ("stock",),
    "DELETE_STOCK_MOVEMENT": (),

    # Partners
    "VIEW_SUPPLIERS": ("stock", "viewer"),
    "MANAGE_SUPPLIERS": ("stock",),
    "VIEW_CUSTOMERS": ("cashier", "viewer"),
    "MANAGE_CUSTOMERS": ("cashier",),

    # Point of sale
    "OPERATE_POS": ("cashier",),
    "VIEW_SALES": ("cashier", "viewer"),
    "PROCESS_RETURNS": ("cashier",),
    "VIEW_SHIFTS": ("viewer",),
    "CLOSE_ANY_SHIFT": (),

    # Accounting
    "VIEW_TRANSACTIONS": ("viewer",),
    "MANAGE_TRANSACTIONS": (),
    "VIEW_REPORTS": ("viewer",),
    "MANAGE_QUOTATIONS": ("cashier",),

    # Administration
    "MANAGE_USERS": (),
    "VIEW_AUDIT_LOG": (),
}


def role_has_permission(role: str | None, permission_code: str) -> bool:
    if role not in ROLES:
        return False
    if role == "admin":
        return True
    return role in ROLE_PERMISSIONS.get(permission_code, ())


def permissions_for_role(role: str | None) -> list[str]:
    return sorted(code for code in ROLE_PERMISSIONS if role_has_permission(role, code))
