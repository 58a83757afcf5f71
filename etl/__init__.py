# WORKFLOW: ETL package for CMS physician fee schedule RVU ingestion.
# Used by: scripts/ingest_rvu.py
# Modules include:
# 1. fetch.py - Download release archives with Last-Modified / Date provenance
# 2. archive.py - Locate the PPRRVU member inside the zip
# 3. extract.py - Normalize line endings, skip the title block, tokenize rows
# 4. decoder.py - Typed, lenient decoding of each row (+ code_tables.py labels)
# 5. id_hash.py - Content identity key for idempotent loading
# 6. load.py - Insert-or-ignore batches into the rvu table
# 7. pipeline.py - Per-release orchestration and the worker pool
#
# ETL flow: ZIP -> PPRRVU CSV -> rows -> records -> keyed records -> database

"""
ETL package for CMS RVU data ingestion.
"""
