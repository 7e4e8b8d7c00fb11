"""Public façade for the ``io`` sub-package.

The package holds the stateless file-staging helpers that touch the disk on
behalf of the wizard: writing uploads, extracting and building archives,
splitting delimited text and (de)serialising the template artifact.  See
:mod:`ncomatic.io.staging` for details.
"""

from .staging import (
    compress,
    create_download_subdirectory,
    extract_archive,
    list_inventory,
    parse_by_delimiter,
    parse_by_line,
    read_template,
    write_template,
    write_uploaded_file,
)

__all__ = [
    "write_uploaded_file",
    "create_download_subdirectory",
    "parse_by_delimiter",
    "parse_by_line",
    "extract_archive",
    "compress",
    "list_inventory",
    "write_template",
    "read_template",
]
