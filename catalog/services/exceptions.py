class CatalogServiceException(Exception):
    def __init__(self, message: str = '') -> None:
        Exception.__init__(self, message)
        self.message = message


class VendorNotFoundError(CatalogServiceException):
    pass


class VendorPriorityValidationError(CatalogServiceException):
    pass


class VendorUpdateNotAllowedError(CatalogServiceException):
    pass


class SyncAlreadyInProgressError(CatalogServiceException):
    pass


class FetchAdapterNotConfiguredError(CatalogServiceException):
    pass


class CandidateValidationError(CatalogServiceException):
    pass
