from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from .serializers import UserSerializer, FriendSerializer


@extend_schema(
    responses={200: UserSerializer},
    description="Get the currently authenticated user's profile.",
    tags=['auth'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_current_user(request):
    """Get current user profile."""
    serializer = UserSerializer(request.user)
    return Response(serializer.data)


@extend_schema(
    responses={200: FriendSerializer(many=True)},
    description="List the current user's friends (candidates for group membership).",
    tags=['auth'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_friends(request):
    """List current user's friends."""
    friends = request.user.friends.order_by('username')
    serializer = FriendSerializer(friends, many=True)
    return Response(serializer.data)
