from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, logout, user_me,
    update_profile, update_password,
    user_list_create, user_detail, role_list, page_permission_list,
    audit_log_list,
)

urlpatterns = [
    # Auth endpoints
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/logout/', logout, name='logout'),
    path('auth/me/', user_me, name='user-me'),
    path('auth/profile/', update_profile, name='user-profile'),
    path('auth/password/', update_password, name='user-password'),

    # User endpoints
    path('users/', user_list_create, name='user-list-create'),
    path('users/roles/', role_list, name='user-roles'),
    path('users/permissions/', page_permission_list, name='user-permissions'),
    path('users/<int:pk>/', user_detail, name='user-detail'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
]
