class ScheduleError(Exception):
    """Base class for failures raised by the schedule core."""

    # Message shown to end users; only validation errors add detail.
    public_message = "La operación no se pudo completar. Intenta de nuevo."


class ImportValidationError(ScheduleError):
    """Raised when an import batch has at least one invalid row. Blocks the whole batch."""

    public_message = "El archivo contiene errores de validación."

    def __init__(self, result):
        self.result = result
        super().__init__(f"{len(result.errors)} validation error(s) in import batch")


class NotFoundError(ScheduleError):
    """Raised when an expected instructor, row or event cannot be located."""

    public_message = "No se encontró el elemento solicitado."


class BusyError(ScheduleError):
    """Raised when a draft operation is attempted while another one is in flight."""

    public_message = "Ya hay una operación en curso. Por favor espera e intenta de nuevo."


class StorageError(ScheduleError):
    """Raised when the durable store could not persist a snapshot."""

    public_message = "Error al guardar los datos. Intenta de nuevo."


class PublishNotAllowedError(ScheduleError):
    """Raised when publish is requested before a save has settled."""

    public_message = "Debes guardar primero y esperar 2 segundos antes de publicar."


class ConfirmationRequiredError(ScheduleError):
    """Raised when a destructive operation arrives without explicit confirmation."""

    public_message = "Esta operación requiere confirmación explícita."


class IntegrityWarning(UserWarning):
    """Emitted when the post-import event count is lower than expected."""

    pass


# Mapping of custom exceptions to HTTP status codes
CUSTOM_ERRORS = {
    ImportValidationError: 422,
    NotFoundError: 404,
    BusyError: 409,
    StorageError: 503,
    PublishNotAllowedError: 409,
    ConfirmationRequiredError: 400,
}
