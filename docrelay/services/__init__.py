"""Services package — all pipeline logic lives here, never in routers.

Files:
  validator.py      — per-slot extension / size checks (pure, no I/O)
  uploaders.py      — AttachmentUploader and its object-store, attachment-API and blob-store variants
  records.py        — single merge patch of the candidate record
  notifications.py  — best-effort automation webhook
  orchestrator.py   — UploadOrchestrator, the submission state machine
  factory.py        — wires the above from Settings

Rule: routers call the orchestrator, the orchestrator calls collaborators.
      No FastAPI imports in services.
"""
