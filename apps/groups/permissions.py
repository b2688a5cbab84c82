from rest_framework import permissions


class IsGroupAdmin(permissions.BasePermission):
    """
    Permission: User must hold the admin role in the group.
    """
    message = 'Only group admins can perform this action'

    def has_object_permission(self, request, view, obj):
        return obj.is_admin(request.user)


class IsSelfOrGroupAdmin(permissions.BasePermission):
    """
    Permission: members may act on their own membership, admins on anyone's.

    The target is the ``user_id`` in the request body.
    """
    message = 'Only group admins can remove other members'

    def has_object_permission(self, request, view, obj):
        data = request.data if hasattr(request.data, 'get') else {}
        target = data.get('user_id')
        if target is not None and str(target).lower() == str(request.user.id):
            return True
        return obj.is_admin(request.user)
