"""Audiobook Library -- discover, import, and curate audiobooks into named libraries.

Core modules:
    config             -- Library configuration via pydantic-settings (LIBRARY_* env vars)
                          and loguru setup (stderr + rotating library.log).
    cli                -- Click command group: scan, import, browse, and management of
                          libraries, directories, import folders, settings and metadata.
    library_db         -- SQLite repository (WAL, per-thread connections). Snapshots the
                          live source value when a metadata field is locked without a value.
    paths              -- Root confinement (resolve_within_root) and directory browsing.
    scanner            -- Audiobook discovery: loose audio files, folders with direct audio,
                          and the first audio-bearing folder down each nested branch.
    dedup              -- Exact asset-path check that keeps scans idempotent.
    scan_orchestrator  -- LibraryScanner: discovery + dedup across a library's enabled
                          directories. Strictly additive; a failing directory is skipped.
    import_orchestrator-- Importer: plan, copy, and register staged selections with
                          per-item error collection (completed / partial / failed).
    metadata_resolver  -- Agent / file / custom field sources with independent locks,
                          override payload validation, and the effective-value cascade.
    ffprobe            -- Optional media duration probe via ffprobe subprocess.
    sanitize           -- Path component sanitization for template destinations.

Subpackages:
    ops -- Import planning (metadata from names, destination templates) and file transfer
"""
