class ShiftIQError(Exception):
    """Base error; carries the HTTP status the API reports it with."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(ShiftIQError):
    """Required input missing or blank"""
    status_code = 400


class NotFound(ShiftIQError):
    """Referenced document or session does not exist"""
    status_code = 404


class EmptyDocument(ShiftIQError):
    """Chunking produced no usable chunks"""
    status_code = 400


class EmbeddingFailure(ShiftIQError):
    """Every chunk embedding call failed"""
    status_code = 500


class ProviderError(ShiftIQError):
    """Embedding or completion call failed outright"""
    status_code = 502


class LLMConfigurationError(ProviderError):
    """Provider is not configured (missing API key etc.)"""
    pass


class PersistenceError(ShiftIQError):
    """Store write failed"""
    status_code = 500
