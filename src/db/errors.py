# exceptions raised by the db package


class StorefrontError(Exception):
    """Base class for all storefront failures."""


class SchemaError(StorefrontError):
    """A required table could not be created. Fatal at startup."""


class ValidationError(StorefrontError, ValueError):
    """Rejected operation; the message is safe to show to the user."""


class NotFoundError(StorefrontError, LookupError):
    pass


class CheckoutError(StorefrontError):
    """
    The order could not be persisted. The transaction was rolled back and the
    cart left untouched, so the customer can simply try again.
    """
