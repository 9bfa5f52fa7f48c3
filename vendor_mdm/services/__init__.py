"""Services package: all business logic lives here, never in routers.

Files:
  orchestrator.py    - primary write + best-effort side effects, outcome report
  artifacts.py       - payload archives and domain events in the document store
  change_request.py  - change request workflow
  invitation.py      - invitation lifecycle and registration through a link
  vendor.py          - vendor applications and upstream vendor lookup
  metadata.py        - reference data, validation rule sets and their cache
  email.py           - invitation email rendering and (logging) delivery

Rule: routers call services, services call repositories, repositories call the DB.
      No SQLAlchemy queries in routers. No FastAPI imports in services.
"""
