"""File operations for importing staged audiobooks.

Submodules:
    planner  -- Naive metadata extraction from a staged file or folder name
                ("Author - Title", "Author_Title") and destination path
                synthesis from a token template ({author}/{title}, flat, ...).
                Author, title, series and narrator are sanitized before
                substitution; series_num and year go in raw.
    transfer -- Recursive copy of a staged file or directory tree into the
                managed library, preserving file permissions. Not atomic:
                a failed copy leaves whatever was already written.
"""
