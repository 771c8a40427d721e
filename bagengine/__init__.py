"""
an engine for creating, updating, and verifying BagIt bags on local disk.

The BagDirectory class wraps a bag's root directory:  it establishes the
bag's structure, adds and removes payload files, and keeps the descriptive
metadata (bag-info.txt) current as the payload changes.  Checksum manifests
are written on request with write_manifests() and checked with verify().
"""
from .constants import BAGIT_VERSION, PAYLOAD, TAG, Version
from .access.bag import BagDirectory, open_or_create, is_bag
from .access.manifest import ManifestStore, ManifestRecord, TagManifestRecord
from .access.fetch import FetchList, FetchEntry
from .access.oxum import PayloadEntry, oxum, format_oxum, parse_oxum
from .access.checksum import ChecksumProvider, HashlibChecksumProvider
from .access.paths import Path
from .access.exceptions import (BagError, ConflictError, NotFoundError,
                                IOFailure, UnsafePathError, ManifestParseError,
                                UnsupportedAlgorithm, ValidationFailure)
from .validate import BagValidator, validate_bag, VerificationReport
