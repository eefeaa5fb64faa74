"""
Permission System Constants and Definitions

Centralized permission definitions ensure consistency across the application.
All permission codes and role mappings defined here.

DESIGN PRINCIPLES:
- Permissions are granular (one action per permission)
- Default role mappings follow principle of least privilege
- Admin has all permissions by default
"""

# =============================================================================
# PERMISSION DEFINITIONS
# =============================================================================

# Each permission is defined as: (code, description)
PERMISSION_DEFINITIONS = [
    ("MANAGE_CUSTOMERS", "Create, edit and delete customers"),
    ("MANAGE_PRESCRIPTIONS", "Create, edit and delete prescriptions"),
    ("MANAGE_APPOINTMENTS", "Create, edit and delete appointments"),
    ("VIEW_PRODUCTS", "View the product catalog and stock levels"),
    ("MANAGE_PRODUCTS", "Create, edit and delete products (including stock)"),
    ("VIEW_SALES", "View sales"),
    ("CREATE_SALE", "Create sales and update their payment status"),
    ("CANCEL_SALE", "Delete sales and restore their stock"),
    ("VIEW_REPORTS", "View period reports and dashboard statistics"),
    ("MANAGE_USERS", "Register staff accounts"),
]

ALL_PERMISSIONS = frozenset(code for code, _ in PERMISSION_DEFINITIONS)


# =============================================================================
# DEFAULT ROLE MAPPINGS
# =============================================================================

ROLE_PERMISSIONS = {
    "admin": ALL_PERMISSIONS,
    "staff": frozenset({
        "MANAGE_CUSTOMERS",
        "MANAGE_PRESCRIPTIONS",
        "MANAGE_APPOINTMENTS",
        "VIEW_PRODUCTS",
        "VIEW_SALES",
        "CREATE_SALE",
        "VIEW_REPORTS",
    }),
}
