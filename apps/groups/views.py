from rest_framework import viewsets, status
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from .models import Group
from .serializers import (
    AddFriendsSerializer,
    CommentInputSerializer,
    DebtSerializer,
    ExpenseCreateSerializer,
    ExpenseSerializer,
    GenerateInviteSerializer,
    GroupCommentSerializer,
    GroupCreateSerializer,
    GroupListSerializer,
    GroupMemberSerializer,
    GroupSerializer,
    GroupUpdateSerializer,
    JoinByInviteSerializer,
    JoinGroupSerializer,
    RemoveMemberSerializer,
    SettleDebtSerializer,
)
from .permissions import IsGroupAdmin, IsSelfOrGroupAdmin

from apps.groups.services import (
    create_group,
    update_group,
    archive_group,
    delete_group,
    get_user_groups,
    join_group,
    join_by_invite,
    add_friends_to_group,
    remove_member,
    get_group_members,
    generate_invite_code,
    add_expense,
    get_expenses,
    recalculate_debts,
    get_debts,
    get_balances,
    settle_debt,
    add_comment,
    edit_comment,
    get_comments,
    # Exceptions
    GroupsServiceError,
)

ERROR_STATUS_CODES = {
    'not_found': status.HTTP_404_NOT_FOUND,
    'conflict': status.HTTP_409_CONFLICT,
    'validation': status.HTTP_400_BAD_REQUEST,
    'precondition_failed': status.HTTP_409_CONFLICT,
    'forbidden': status.HTTP_403_FORBIDDEN,
}


def error_response(exc: GroupsServiceError) -> Response:
    """Convert a service exception into an error response."""
    return Response(
        exc.as_dict(),
        status=ERROR_STATUS_CODES.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    )


class GroupPagination(PageNumberPagination):
    """Custom pagination for groups."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class GroupViewSet(viewsets.ModelViewSet):
    """
    ViewSet for groups and their ledger.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Get all groups the user is an active member of
    create: Create a new group
    retrieve: Get a specific group with members and debts
    partial_update: Update group settings (admin only)
    destroy: Delete a group (admin only, no pending debts)
    """

    serializer_class = GroupSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = GroupPagination
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        """Return only groups where user is an active member."""
        if self.action == 'list':
            return get_user_groups(user=self.request.user)
        # Detail routes still reach archived groups
        return Group.objects.filter(
            memberships__user=self.request.user,
            memberships__is_active=True
        ).select_related('owner').distinct()

    def get_serializer_class(self):
        """Use different serializers for different actions."""
        if self.action == 'list':
            return GroupListSerializer
        elif self.action == 'create':
            return GroupCreateSerializer
        elif self.action == 'partial_update':
            return GroupUpdateSerializer
        return GroupSerializer

    def get_permissions(self):
        """Set permissions based on action."""
        if self.action in ['partial_update', 'destroy', 'generate_invite', 'archive']:
            return [IsAuthenticated(), IsGroupAdmin()]
        if self.action == 'remove_member':
            return [IsAuthenticated(), IsSelfOrGroupAdmin()]
        return [IsAuthenticated()]

    def _group_response(self, group, status_code=status.HTTP_200_OK):
        serializer = GroupSerializer(group, context={'request': self.request})
        return Response(serializer.data, status=status_code)

    def create(self, request, *args, **kwargs):
        """Create a new group."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            group = create_group(owner=request.user, **serializer.validated_data)
        except GroupsServiceError as e:
            return error_response(e)

        return self._group_response(group, status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        """Update group details and settings (admin only)."""
        group = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            group = update_group(group_id=group.id, **serializer.validated_data)
        except GroupsServiceError as e:
            return error_response(e)

        return self._group_response(group)

    def destroy(self, request, *args, **kwargs):
        """Delete a group (admin only)."""
        group = self.get_object()

        try:
            delete_group(group_id=group.id)
        except GroupsServiceError as e:
            return error_response(e)

        return Response(status=status.HTTP_204_NO_CONTENT)

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    @action(detail=False, methods=['post'])
    def join(self, request):
        """Join a group using its group code."""
        serializer = JoinGroupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            group = join_group(
                group_code=serializer.validated_data['group_code'],
                user=request.user
            )
        except GroupsServiceError as e:
            return error_response(e)

        return self._group_response(group)

    @action(detail=False, methods=['post'], url_path='join-invite')
    def join_invite(self, request):
        """Join a group using an invite code."""
        serializer = JoinByInviteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            group = join_by_invite(
                invite_code=serializer.validated_data['invite_code'],
                user=request.user
            )
        except GroupsServiceError as e:
            return error_response(e)

        return self._group_response(group)

    @action(detail=True, methods=['get'])
    def members(self, request, pk=None):
        """Get all active members of the group."""
        group = self.get_object()
        memberships = get_group_members(group_id=group.id)
        serializer = GroupMemberSerializer(memberships, many=True)
        return Response(serializer.data)

    @action(detail=True, methods=['post'], url_path='remove-member')
    def remove_member(self, request, pk=None):
        """Remove a member (admins may remove anyone, members only themselves)."""
        group = self.get_object()
        serializer = RemoveMemberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            group = remove_member(group_id=group.id, user_id=serializer.validated_data['user_id'])
        except GroupsServiceError as e:
            return error_response(e)

        return self._group_response(group)

    @action(detail=True, methods=['post'], url_path='add-friends')
    def add_friends(self, request, pk=None):
        """Add friends of the current user to the group."""
        group = self.get_object()
        serializer = AddFriendsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            group, added, errors = add_friends_to_group(
                group_id=group.id,
                added_by=request.user,
                usernames=serializer.validated_data['usernames']
            )
        except GroupsServiceError as e:
            return error_response(e)

        return Response({
            'message': f'Added {len(added)} friends to group',
            'added_friends': added,
            'errors': errors,
            'group': GroupSerializer(group, context={'request': request}).data,
        })

    @action(detail=True, methods=['post'], url_path='generate-invite')
    def generate_invite(self, request, pk=None):
        """Generate a time-limited invite code (admin only)."""
        group = self.get_object()
        serializer = GenerateInviteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            group = generate_invite_code(
                group_id=group.id,
                expiration_hours=serializer.validated_data.get('expiration_hours')
            )
        except GroupsServiceError as e:
            return error_response(e)

        return Response({
            'invite_code': group.invite_code,
            'expires_at': group.invite_code_expires_at,
            'message': 'Invite code generated successfully'
        })

    @action(detail=True, methods=['post'])
    def archive(self, request, pk=None):
        """Archive the group (admin only)."""
        group = self.get_object()

        try:
            group = archive_group(group_id=group.id)
        except GroupsServiceError as e:
            return error_response(e)

        return self._group_response(group)

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    @action(detail=True, methods=['get', 'post'])
    def expenses(self, request, pk=None):
        """List expenses, or add one (recomputes debts when auto-simplify is on)."""
        group = self.get_object()

        if request.method == 'GET':
            expenses = get_expenses(group_id=group.id, currency=request.query_params.get('currency'))
            return Response(ExpenseSerializer(expenses, many=True).data)

        serializer = ExpenseCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            group = add_expense(
                group_id=group.id,
                description=data['description'],
                amount=data['amount'],
                currency=data.get('currency'),
                paid_by_id=data.get('paid_by', request.user.id),
                split_between=data['split_between'],
                category=data['category'],
                receipt_url=data['receipt_url'],
                notes=data['notes']
            )
        except GroupsServiceError as e:
            return error_response(e)

        return self._group_response(group, status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'])
    def debts(self, request, pk=None):
        """Get simplified debts, optionally filtered by ?currency=."""
        group = self.get_object()
        debts = get_debts(group_id=group.id, currency=request.query_params.get('currency'))
        return Response(DebtSerializer(debts, many=True).data)

    @action(detail=True, methods=['get'])
    def balances(self, request, pk=None):
        """Get each member's net balance per currency."""
        group = self.get_object()
        balances = get_balances(group_id=group.id)
        names = {m.user_id: m.username for m in group.memberships.all()}

        return Response({
            currency: [
                {
                    'user_id': str(user_id),
                    'username': names.get(user_id, ''),
                    'balance': str(balance),
                }
                for user_id, balance in member_balances.items()
            ]
            for currency, member_balances in balances.items()
        })

    @action(detail=True, methods=['post'], url_path='calculate-debts')
    def calculate_debts(self, request, pk=None):
        """Recalculate debts from the full ledger."""
        group = self.get_object()

        try:
            debts = recalculate_debts(group_id=group.id)
        except GroupsServiceError as e:
            return error_response(e)

        return Response({
            'message': 'Debts calculated successfully',
            'debts': DebtSerializer(debts, many=True).data,
        })

    @action(detail=True, methods=['post'], url_path='settle-debt')
    def settle_debt(self, request, pk=None):
        """Mark a pending debt as settled."""
        group = self.get_object()
        serializer = SettleDebtSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            group = settle_debt(
                group_id=group.id,
                debt_id=serializer.validated_data['debt_id'],
                settled_by=request.user
            )
        except GroupsServiceError as e:
            return error_response(e)

        return self._group_response(group)

    # -------------------------------------------------------------------------
    # Comments
    # -------------------------------------------------------------------------

    @action(detail=True, methods=['get', 'post'])
    def comments(self, request, pk=None):
        """List comments, or post a new one."""
        group = self.get_object()

        if request.method == 'GET':
            comments = get_comments(group_id=group.id)
            return Response(GroupCommentSerializer(comments, many=True).data)

        serializer = CommentInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            comment = add_comment(
                group_id=group.id,
                user=request.user,
                message=serializer.validated_data['message']
            )
        except GroupsServiceError as e:
            return error_response(e)

        return Response(GroupCommentSerializer(comment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['patch'], url_path=r'comments/(?P<comment_id>[^/.]+)')
    def edit_comment(self, request, pk=None, comment_id=None):
        """Edit one of your own comments."""
        group = self.get_object()
        serializer = CommentInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            comment = edit_comment(
                group_id=group.id,
                comment_id=comment_id,
                user=request.user,
                message=serializer.validated_data['message']
            )
        except GroupsServiceError as e:
            return error_response(e)

        return Response(GroupCommentSerializer(comment).data)


@extend_schema(
    responses={200: GroupListSerializer(many=True)},
    description="Get all groups where the current user is an active member.",
    tags=['groups'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_groups(request):
    """Get all groups where user is an active member."""
    groups = get_user_groups(user=request.user)
    serializer = GroupListSerializer(groups, many=True, context={'request': request})
    return Response(serializer.data)
