from django.urls import path

from catalog.api.views.products import ProductImageView
from catalog.api.views.vendors import VendorPriorityView, VendorSyncView, VendorView

urlpatterns = [
    path("vendors/<int:vendor_id>/", VendorView.as_view(), name="vendor"),
    path("vendors/<int:vendor_id>/priority/", VendorPriorityView.as_view(), name="vendor_priority"),
    path("vendors/<int:vendor_id>/sync/", VendorSyncView.as_view(), name="vendor_sync"),
    path("products/<str:upc>/image/", ProductImageView.as_view(), name="product_image"),
]
