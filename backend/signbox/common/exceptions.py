"""Error taxonomy shared by the placement, compositing and signing layers.

Every error derives from ``ValueError`` so service code keeps the
``raise ValueError`` / ``except ValueError`` shape used across the routers,
while each subclass carries the HTTP status it maps to.
"""

from fastapi import status


class SignBoxError(ValueError):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request could not be processed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class InvalidBox(SignBoxError):
    default_message = "Invalid signature box"


class UnknownSigner(SignBoxError):
    default_message = "Signer is not a registered user"


class DocumentNotFound(SignBoxError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Document not found"


class AuthorizationDenied(SignBoxError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to act on this document"


class SignatureRequired(SignBoxError):
    default_message = "A signature is required"


class AlreadySigned(SignBoxError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Document already signed by this signer"


class DocumentIncomplete(SignBoxError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Not every signer has signed this document yet"


class CompositeInProgress(SignBoxError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "A signed copy of this document is already being generated"


class MalformedDocument(SignBoxError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "PDF could not be parsed"


class PageOutOfRange(SignBoxError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Signature box references a page that does not exist"


class SerializationError(SignBoxError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Signed PDF could not be written"


class IdentityConflict(SignBoxError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "This email is already registered to another account"
