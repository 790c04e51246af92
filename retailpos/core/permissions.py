from rest_framework.permissions import BasePermission


def is_admin_user(user):
    """
    Check if user is an admin user.
    Returns True if the user is in the 'admin' group or is a superuser.
    """
    if not user or not user.is_authenticated:
        return False
    return user.is_admin_role()


class IsAdminRole(BasePermission):
    """Only users holding the admin role"""
    message = 'Only administrators can perform this action.'

    def has_permission(self, request, view):
        return is_admin_user(request.user)


class PagePermissionRequired(BasePermission):
    """Checks the request user's page permissions against `page_name`"""
    page_name = None

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.has_page_permission(self.page_name)


def page_permission(page_name):
    """Build a permission class bound to one page permission, e.g. page_permission('sales')"""
    return type(
        f'HasPagePermission_{page_name}',
        (PagePermissionRequired,),
        {'page_name': page_name, 'message': f'You do not have access to the {page_name} page.'},
    )
