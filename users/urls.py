"""Aggregate user namespaces under /api/v1/.

Auth routes live in their own URLconf; the profile route sits under
`account/`.
"""

from django.urls import include, path

from .views import current_user

urlpatterns = [
    path("auth/", include("users.auth_urls")),
    path("account/me/", current_user, name="profile"),
]
