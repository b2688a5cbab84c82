from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'groups'

# Router for ViewSets
router = DefaultRouter()
router.register(r'', views.GroupViewSet, basename='group')

urlpatterns = [
    # Group ViewSet routes
    # GET    /api/groups/              - List user's groups
    # POST   /api/groups/              - Create group
    # GET    /api/groups/{id}/         - Get group details
    # PATCH  /api/groups/{id}/         - Update group settings (admin)
    # DELETE /api/groups/{id}/         - Delete group (admin, no pending debts)

    # Membership
    # POST   /api/groups/join/                          - Join with group code
    # POST   /api/groups/join-invite/                   - Join with invite code
    # GET    /api/groups/{id}/members/                  - List active members
    # POST   /api/groups/{id}/remove-member/            - Remove member (admin or self)
    # POST   /api/groups/{id}/add-friends/              - Add friends by username
    # POST   /api/groups/{id}/generate-invite/          - Generate invite code (admin)
    # POST   /api/groups/{id}/archive/                  - Archive group (admin)

    # Ledger
    # GET    /api/groups/{id}/expenses/                 - List expenses
    # POST   /api/groups/{id}/expenses/                 - Add expense
    # GET    /api/groups/{id}/debts/?currency=XXX       - Simplified debts
    # GET    /api/groups/{id}/balances/                 - Net balances per currency
    # POST   /api/groups/{id}/calculate-debts/          - Recalculate debts
    # POST   /api/groups/{id}/settle-debt/              - Settle a debt

    # Comments
    # GET    /api/groups/{id}/comments/                 - List comments
    # POST   /api/groups/{id}/comments/                 - Add comment
    # PATCH  /api/groups/{id}/comments/{comment_id}/    - Edit own comment

    # Additional endpoints
    path('my/', views.my_groups, name='my-groups'),

    # Include router URLs
    path('', include(router.urls)),
]
