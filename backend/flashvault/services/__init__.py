# Services package init
"""
FlashVault Backend — Services Layer
=====================================

Service Inventory:
    - composer:           raw mapping → validated FlashlightCreate (no I/O)
    - reference_resolver: label → reference id, create-on-miss
    - writer:             savepoint-wrapped flashlight + emitter persistence
    - flashlight_service: per-user CRUD orchestration
    - bulk_importer:      ordered, per-record-isolated batch import
    - identity:           identity-provider client used by the access gate
"""
