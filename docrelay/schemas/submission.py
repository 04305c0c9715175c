"""Response envelopes for the upload endpoint."""


from docrelay.schemas.common import CamelModel

class DocumentsUploaded(CamelModel):
    identity: bool = False
    address: bool = False
    offer: bool = False

class SubmissionSuccess(CamelModel):
    success: bool = True
    record_id: str
    documents_uploaded: DocumentsUploaded
    message: str = "All documents uploaded successfully"
    warnings: list[str] = []

class SubmissionFailure(CamelModel):
    success: bool = False
    stage: str
    code: str
    message: str

class EnvironmentCheck(CamelModel):
    storage_backend: str
    configured: dict[str, bool]
    missing: list[str]
    notifications_enabled: bool
