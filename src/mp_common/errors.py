"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Listing
  3xxx: Promotion
  9xxx: System

Per-listing save failures during apply/revoke are NOT raised; they are
collected into BatchResult.failed. Everything here is raised synchronously.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/User ---

class UsernameExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Username already exists", 409)


class EmailExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Email already exists", 409)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid username or password", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Admin access required", 403)


# --- 2xxx: Listing ---

class ListingNotFoundError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(2001, f"Listing not found: {listing_id}", 404)


class InvalidDiscountError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2002, f"Invalid discount: {detail}", 422)


class NoListingsMatchedError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2003, f"No listings matched: {detail}", 404)


# --- 3xxx: Promotion ---

class PromotionNotFoundError(AppError):
    def __init__(self, promotion_id: str) -> None:
        super().__init__(3001, f"Promotion not found: {promotion_id}", 404)


class InvalidPromotionError(AppError):
    """Malformed promotion, rejected before any targeting runs."""

    def __init__(self, detail: str) -> None:
        super().__init__(3002, f"Invalid promotion: {detail}", 422)


class PromotionOutsideWindowError(AppError):
    def __init__(self, promotion_id: str) -> None:
        super().__init__(
            3003, f"Promotion {promotion_id} is outside its validity window", 422
        )


class PromotionStatusError(AppError):
    def __init__(self, promotion_id: str, status: str, action: str) -> None:
        super().__init__(
            3004, f"Promotion {promotion_id} in status {status} cannot be {action}", 422
        )


class PromoCodeExistsError(AppError):
    def __init__(self, code: str) -> None:
        super().__init__(3005, f"Promo code already exists: {code}", 409)


class InvalidPromoCodeError(AppError):
    def __init__(self) -> None:
        super().__init__(3006, "Invalid promo code", 404)


class PromoCodeNotUsableError(AppError):
    def __init__(self, reason: str) -> None:
        super().__init__(3007, f"Promo code cannot be used: {reason}", 422)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
