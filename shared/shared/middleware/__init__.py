"""HTTP middleware shared by the Cinedex services. Register error_envelope_middleware last so it wraps the rest."""
from shared.middleware.error_handler import error_envelope_middleware
from shared.middleware.request_id import request_id_middleware

__all__ = ["error_envelope_middleware", "request_id_middleware"]
