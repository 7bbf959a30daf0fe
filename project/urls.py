from django.urls import include, path

from common import views as common_views

urlpatterns = [
    path("api/", include("catalog.api.urls")),
]

handler404 = common_views.handler_404
