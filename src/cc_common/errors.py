"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Input / lookup
  2xxx: Request lifecycle (decisions, idempotence guards)
  3xxx: Ledger / credit
  4xxx: Realtime channel
  9xxx: System / auth
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


# --- 1xxx: Input / lookup ---

class ValidationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1001, f"Validation failed: {detail}", 422)


class NotFoundError(AppError):
    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(1002, f"{kind} not found: {entity_id}", 404)


# --- 2xxx: Request lifecycle ---

class AlreadyDecidedError(AppError):
    def __init__(self, request_id: str, status: str) -> None:
        super().__init__(2001, f"Request {request_id} already decided: {status}", 409)


class AlreadyProcessedError(AppError):
    def __init__(self, entity_id: str, status: str) -> None:
        super().__init__(2002, f"{entity_id} already processed: {status}", 409)


class IneligibleError(AppError):
    def __init__(self, player_id: str, detail: str) -> None:
        super().__init__(2003, f"Player {player_id} is not eligible for credit: {detail}", 422)


# --- 3xxx: Ledger / credit ---

class InsufficientCreditError(AppError):
    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            3001,
            f"Insufficient credit: requested {requested}, available {available}",
            422,
        )


class CreditLimitExceededError(AppError):
    def __init__(self, player_id: str, limit: int, would_be: int) -> None:
        super().__init__(
            3002,
            f"Credit limit exceeded for {player_id}: limit {limit}, balance would be {would_be}",
            422,
        )


class NotEligibleError(AppError):
    def __init__(self, player_id: str) -> None:
        super().__init__(3003, f"Player {player_id} is not credit-eligible", 422)


class ConcurrentUpdateError(AppError):
    def __init__(self, player_id: str) -> None:
        super().__init__(3004, f"Concurrent update on credit account {player_id}, retry", 409)


# --- 4xxx: Realtime channel ---

class ConnectionLostError(AppError):
    def __init__(self, detail: str = "Realtime connection lost") -> None:
        super().__init__(4001, detail, 503)


class RealtimeUnavailableError(AppError):
    def __init__(self, attempts: int) -> None:
        super().__init__(
            4002, f"Real-time updates unavailable after {attempts} reconnect attempts", 503
        )


# --- 9xxx: System / auth ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(9101, "Invalid or expired token", 401)


class PermissionDeniedError(AppError):
    def __init__(self, detail: str = "Permission denied") -> None:
        super().__init__(9102, detail, 403)


# code → class, used by clients to turn an error envelope back into a typed error
ERRORS_BY_CODE: dict[int, type[AppError]] = {
    1001: ValidationError,
    1002: NotFoundError,
    2001: AlreadyDecidedError,
    2002: AlreadyProcessedError,
    2003: IneligibleError,
    3001: InsufficientCreditError,
    3002: CreditLimitExceededError,
    3003: NotEligibleError,
    3004: ConcurrentUpdateError,
    4001: ConnectionLostError,
    4002: RealtimeUnavailableError,
    9002: InternalError,
    9101: InvalidCredentialsError,
    9102: PermissionDeniedError,
}


def error_from_envelope(code: int, message: str, http_status: int) -> AppError:
    """Rebuild a typed error from an API error envelope.

    The subclass constructors take domain arguments, so the instance is created
    without __init__ and filled in from the envelope.
    """
    cls = ERRORS_BY_CODE.get(code, AppError)
    err = cls.__new__(cls)
    AppError.__init__(err, code, message, http_status)
    return err
