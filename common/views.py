import typing

import simplejson
from django import http, views


class Handler404View(views.View):
    def dispatch(
        self, request: http.HttpRequest, *args: typing.Any, **kwargs: typing.Any
    ) -> http.HttpResponse:
        return http.HttpResponse(
            headers={"Content-Type": "application/json"},
            content=simplejson.dumps(
                {
                    "message": "The endpoint {} you are trying to access does not exist.".format(
                        request.path
                    )
                }
            ),
            status=404,
        )


handler_404 = Handler404View.as_view()
