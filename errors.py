"""
errors.py
Domain errors. Each carries a fixed, user-facing message (pt-BR).
"""

from __future__ import annotations


class IPTVError(Exception):
    message = "Erro inesperado. Tente novamente."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class ValidationError(IPTVError):
    """A required field is missing or invalid (blocking alert at the form)."""
    message = "Preencha os campos obrigatórios."


class StorageUnavailable(IPTVError):
    """The record store could not be reached."""
    message = "Erro ao carregar clientes"


class NotFound(IPTVError):
    """The target record no longer exists in the caller's scope."""
    message = "Cliente não encontrado."


class CSVImportError(IPTVError):
    """CSV malformed or bulk insert rejected. No row-level detail."""
    message = "Erro ao importar arquivo. Verifique o formato."
