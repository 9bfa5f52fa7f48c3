"""v1 router package: all /api/v1/* endpoints live here.

Files:
  change_requests.py      - change request workflow and attachments
  invitations.py          - vendor invitations and registration through a link
  vendor_applications.py  - self-service vendor applications
  vendors.py              - upstream vendor lookup (mocked)
  metadata.py             - reference data and validation rules

Rule: Routers only handle HTTP (request parsing, response shaping).
      All business logic delegates to vendor_mdm/services/.
"""
