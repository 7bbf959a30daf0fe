class LipseysAPIException(Exception):
    def __init__(self, message: str = "") -> None:
        Exception.__init__(self, message)
        self.message = message


class LipseysAPIBadResponseCodeError(LipseysAPIException):
    def __init__(self, message: str, code: int) -> None:
        LipseysAPIException.__init__(self, message)
        self.code = code
