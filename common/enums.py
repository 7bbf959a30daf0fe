import enum


class HttpMethod(enum.Enum):
    GET = "get"
    POST = "post"
