import simplejson
from django import http, views

from catalog import models as catalog_models
from catalog.services import images as image_services
from common import utils as common_utils


class ProductImageView(views.View):
    def get(self, request, *args, **kwargs):
        upc = kwargs.get("upc")

        if not request.user or not request.user.is_authenticated:
            return http.HttpResponse(
                content=simplejson.dumps({"message": "Permission denied"}),
                status=401
            )

        if not catalog_models.Product.objects.filter(upc=upc).exists():
            return http.HttpResponse(
                content=simplejson.dumps({"message": "Product {} not found".format(upc)}),
                status=404
            )

        result = image_services.resolve_best_image(upc=upc)
        if result is None:
            return http.HttpResponse(
                content=simplejson.dumps({"message": "No image available for product {}".format(upc)}),
                status=404
            )

        return http.HttpResponse(
            content=simplejson.dumps({
                "message": "Product image resolved",
                "data": common_utils.dataclass_to_dict(result),
            }),
            status=200
        )
