"""
Permission System Constants and Definitions

All permission codes and default role mappings live here.

- Permissions are granular (view vs manage per resource)
- Categories group related permissions for display
- "super" has all permissions by default
"""

# =============================================================================
# PERMISSION CATEGORIES
# =============================================================================

class PermissionCategory:
    """Permission categories for organization."""
    SALES = "SALES"
    CATALOG = "CATALOG"
    MEMBERS = "MEMBERS"
    COUPONS = "COUPONS"
    EMPLOYEES = "EMPLOYEES"
    REPORTS = "REPORTS"


# =============================================================================
# PERMISSION DEFINITIONS
# =============================================================================

# Each permission is defined as: (code, name, description, category)
PERMISSION_DEFINITIONS = [
    # SALES PERMISSIONS
    (
        "VIEW_SALES",
        "View Sales",
        "List sales and open sale details",
        PermissionCategory.SALES
    ),
    (
        "MANAGE_SALES",
        "Manage Sales",
        "Create, edit, finalise, cancel and delete sales",
        PermissionCategory.SALES
    ),

    # CATALOG PERMISSIONS
    (
        "VIEW_ITEMS",
        "View Items",
        "View items, stock lots and stock counts",
        PermissionCategory.CATALOG
    ),
    (
        "MANAGE_ITEMS",
        "Manage Items",
        "Create and edit items, receive stock",
        PermissionCategory.CATALOG
    ),

    # MEMBER PERMISSIONS
    (
        "VIEW_MEMBERS",
        "View Members",
        "View members, their sales and point history",
        PermissionCategory.MEMBERS
    ),
    (
        "MANAGE_MEMBERS",
        "Manage Members",
        "Create, edit and delete members",
        PermissionCategory.MEMBERS
    ),

    # COUPON PERMISSIONS
    (
        "VIEW_COUPONS",
        "View Coupons",
        "View coupons",
        PermissionCategory.COUPONS
    ),
    (
        "MANAGE_COUPONS",
        "Manage Coupons",
        "Create, edit and delete coupons",
        PermissionCategory.COUPONS
    ),

    # EMPLOYEE PERMISSIONS
    (
        "MANAGE_EMPLOYEES",
        "Manage Employees",
        "Manage employees and roles, view commission, sales and salaries",
        PermissionCategory.EMPLOYEES
    ),

    # REPORTS
    (
        "VIEW_REPORTS",
        "View Reports",
        "Top-selling and out-of-stock items, coupon usage",
        PermissionCategory.REPORTS
    ),
]


# =============================================================================
# DEFAULT ROLE PERMISSIONS
# =============================================================================

DEFAULT_ROLE_PERMISSIONS = {
    "super": [perm[0] for perm in PERMISSION_DEFINITIONS],

    "admin": [
        "VIEW_SALES",
        "MANAGE_SALES",
        "VIEW_ITEMS",
        "MANAGE_ITEMS",
        "VIEW_MEMBERS",
        "MANAGE_MEMBERS",
        "VIEW_COUPONS",
        "MANAGE_COUPONS",
        "VIEW_REPORTS",
    ],

    "cashier": [
        # POS operations only
        "VIEW_SALES",
        "MANAGE_SALES",
        "VIEW_ITEMS",
        "VIEW_MEMBERS",
        "VIEW_COUPONS",
    ],
}


# =============================================================================
# PERMISSION HELPERS
# =============================================================================

def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()
