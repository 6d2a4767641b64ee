class AppError(Exception):
    """Base application error for the IP geolocation gateway."""


class InvalidInputError(AppError):
    """Raised when a request carries malformed input (e.g. an empty or non-list batch)."""


class InvalidIpError(InvalidInputError):
    """Raised when the supplied IP address is syntactically invalid."""


class NotFoundError(AppError):
    """Base error for anything that was looked up and does not exist."""


class IpNotFoundError(NotFoundError):
    """Raised when no GeoRecord is stored for the IP."""


class NotInDenyListError(NotFoundError):
    """Raised when removing an IP that has no deny-list entry."""


class ConflictError(AppError):
    """Base error for writes that collide with existing state."""


class AlreadyDeniedError(ConflictError):
    """Raised when adding an IP that is already on the deny-list."""


class IpDeniedError(AppError):
    """Raised when a lookup is refused because the IP is on the deny-list."""


class IpProviderError(AppError):
    """Base error for IP geolocation provider failures."""


class UpstreamServiceError(IpProviderError):
    """Raised when the upstream IP provider cannot be reached or fails."""


class ProviderLookupError(IpProviderError, NotFoundError):
    """Raised when the provider answers but reports the lookup itself as invalid or not found."""


# Machine-readable codes shared by the HTTP layer and bulk reports.
# Lookup walks the MRO, so the most specific class wins.
ERROR_CODES: dict[type[AppError], str] = {
    InvalidIpError: "invalid_ip",
    InvalidInputError: "invalid_request",
    IpNotFoundError: "ip_not_found",
    NotInDenyListError: "not_in_deny_list",
    ProviderLookupError: "provider_not_found",
    NotFoundError: "not_found",
    AlreadyDeniedError: "already_denied",
    ConflictError: "conflict",
    IpDeniedError: "ip_denied",
    UpstreamServiceError: "upstream_error",
    IpProviderError: "provider_error",
    AppError: "app_error",
}


def error_code(exc: AppError) -> str:
    for cls in type(exc).__mro__:
        if cls in ERROR_CODES:
            return ERROR_CODES[cls]
    return "app_error"
