"""
Bin Tracker — Services Layer
=============================

Service Inventory:
    - RowStore / SqlAlchemyRowStore: bin rows by primary key
    - BlobStore / LocalBlobStore:   photo payloads by key, with content-type metadata
    - BinService:                   upsert engine and photo workflow over both stores
    - pages:                        HTML rendering of the bin page
"""
