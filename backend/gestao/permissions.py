"""
Permission modules and default roles.

WHY: The dashboard gates every module with four booleans (view, create,
edit, inactivate). Routes check them through decorators.require_capability;
services never look at permissions.
"""

# =============================================================================
# MODULES
# =============================================================================

class Module:
    """Permission modules (one per dashboard area)."""
    CLIENTS = "clients"
    SUPPLIERS = "suppliers"
    PRODUCTS = "products"
    PURCHASES = "purchases"
    ABATES = "abates"
    PRODUCTION = "production"
    SALES = "sales"
    STOCK = "stock"
    FINANCE = "finance"
    CATEGORIES = "categories"
    UNITS = "units"
    USERS = "users"
    ROLES = "roles"


ALL_MODULES = [
    Module.CLIENTS,
    Module.SUPPLIERS,
    Module.PRODUCTS,
    Module.PURCHASES,
    Module.ABATES,
    Module.PRODUCTION,
    Module.SALES,
    Module.STOCK,
    Module.FINANCE,
    Module.CATEGORIES,
    Module.UNITS,
    Module.USERS,
    Module.ROLES,
]

ACTIONS = ("view", "create", "edit", "inactivate")


def full_access() -> dict:
    return {action: True for action in ACTIONS}


def read_only() -> dict:
    return {action: action == "view" for action in ACTIONS}


# =============================================================================
# DEFAULT ROLES
# =============================================================================

# name -> (description, is_super_admin, permission matrix)
DEFAULT_ROLES = {
    "admin": (
        "Full access to every module",
        True,
        {module: full_access() for module in ALL_MODULES},
    ),
    "finance": (
        "Bank accounts, payables, receivables and expenses",
        False,
        {
            Module.FINANCE: full_access(),
            Module.PURCHASES: read_only(),
            Module.SALES: read_only(),
            Module.SUPPLIERS: read_only(),
            Module.CLIENTS: read_only(),
        },
    ),
    "seller": (
        "Registers sales and manages clients",
        False,
        {
            Module.SALES: {"view": True, "create": True, "edit": False, "inactivate": False},
            Module.CLIENTS: {"view": True, "create": True, "edit": True, "inactivate": False},
            Module.PRODUCTS: read_only(),
            Module.STOCK: read_only(),
        },
    ),
    "production": (
        "Slaughter records, production runs and stock adjustments",
        False,
        {
            Module.ABATES: full_access(),
            Module.PRODUCTION: full_access(),
            Module.STOCK: full_access(),
            Module.PRODUCTS: read_only(),
            Module.CATEGORIES: read_only(),
            Module.UNITS: read_only(),
        },
    ),
}
