"""Pydantic schemas package.

Folder intent:
  common.py          - CamelModel base + HealthResponse (all schemas inherit CamelModel)
  change_request.py  - change requests and attachments
  invitation.py      - invitations, registration via invitation, email queue message
  vendor.py          - vendor applications and upstream vendor lookup
  metadata.py        - reference data / validation rule payloads
  documents.py       - document-store item shapes
"""
