class BillHicksException(Exception):
    def __init__(self, message: str = "") -> None:
        Exception.__init__(self, message)
        self.message = message


class BillHicksSFTPConnectionError(BillHicksException):
    pass


class BillHicksFileNotFoundError(BillHicksException):
    pass
