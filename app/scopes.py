from enum import StrEnum


class BookingScope(StrEnum):
    # Customer scopes
    READ = "bookings:read"  # view own bookings
    CANCEL = "bookings:cancel"  # cancel own pending booking

    # Host scopes
    MANAGE = "bookings:manage"  # approve / reject bookings for own properties
    AVAILABILITY = "availability:manage"  # edit weekly windows and stay settings

    # Admin scopes
    ADMIN = "admin:bookings"
    ADMIN_READ = "admin:bookings:read"
    ADMIN_WRITE = "admin:bookings:write"
    ADMIN_DELETE = "admin:bookings:delete"
