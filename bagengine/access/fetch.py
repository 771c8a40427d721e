"""
Reading and writing of a bag's fetch.txt file which declares payload files
that are to be retrieved from remote locations rather than stored in the bag.
"""
import logging
from collections import namedtuple

import fs.path
from bagit import _encode_filename, _decode_filename

from ..constants import FETCH_TXT, TAG_ENCODING
from .exceptions import (ManifestParseError, ConflictError, UnsafePathError,
                         convert_fs_errors)
from .paths import is_dangerous, bag_to_payload
from .manifest import atomic_write_text

log = logging.getLogger(__name__)

class FetchEntry(namedtuple('FetchEntry', "url size path".split())):
    """
    a declaration of a remote payload file.  size is the number of bytes
    (an int) or None if unknown; path is relative to the bag's root directory
    (e.g. "data/x.bin").
    """
    __slots__ = ()

    def format(self):
        """
        return this entry as a line of fetch.txt (without the newline)
        """
        size = (self.size is None and "-") or str(self.size)
        return "{0} {1} {2}".format(self.url, size, _encode_filename(self.path))

class FetchList(object):
    """
    a service for reading and writing a bag's fetch.txt file
    """

    def __init__(self, bagfs, encoding=TAG_ENCODING):
        """
        :param FS bagfs:      the filesystem rooted at the bag's root directory
        :param str encoding:  the encoding of the fetch.txt file
        """
        self._fs = bagfs
        self.encoding = encoding

    @property
    def filename(self):
        return FETCH_TXT

    def exists(self):
        return self._fs.isfile(FETCH_TXT)

    def read(self):
        """
        read the entries of the fetch.txt file.

        :return:  a list of FetchEntry tuples in file order; empty if the bag
                  has no fetch.txt file.
        :raises ManifestParseError:  if a line is malformed
        :raises UnsafePathError:  if a destination points outside of the
                  payload directory
        """
        if not self.exists():
            return []

        with convert_fs_errors("read", FETCH_TXT):
            text = self._fs.readtext(FETCH_TXT, encoding=self.encoding)

        out = []
        for lineno, line in enumerate(text.splitlines(), 1):
            line = line.strip()
            if not line:
                continue

            parts = line.split(None, 2)
            if len(parts) != 3:
                raise ManifestParseError(FETCH_TXT, lineno, line)
            url, size, path = parts

            if size == '-':
                size = None
            elif size.isdigit():
                size = int(size)
            else:
                raise ManifestParseError(FETCH_TXT, lineno, line,
                                         "{0}, line {1}: bad file size: {2}"
                                         .format(FETCH_TXT, lineno, size))

            path = _decode_filename(path)
            self._check_path(path)
            out.append(FetchEntry(url, size, fs.path.normpath(path)))

        return out

    def _check_path(self, path):
        if is_dangerous(path) or not bag_to_payload(fs.path.normpath(path)):
            raise UnsafePathError(path, 'Path "{0}" in "{1}" is unsafe'
                                        .format(path, FETCH_TXT))

    def write(self, entries):
        """
        write out fetch.txt with the given entries, replacing any existing
        version atomically.  If entries is empty, fetch.txt is removed.

        :param entries:  the FetchEntry tuples to write, in order
        :raises ConflictError:  if a destination path is already present as
                  a file in the payload directory or appears more than once
        """
        entries = list(entries)
        seen = set()
        for entry in entries:
            self._check_path(entry.path)
            path = fs.path.normpath(entry.path)
            if path in seen:
                raise ConflictError(path, "Fetch destination declared twice: "
                                          + path)
            seen.add(path)
            if self._fs.exists(path):
                raise ConflictError(path, "Fetch destination already exists "
                                          "in the payload: " + path)

        if not entries:
            if self.exists():
                with convert_fs_errors("remove", FETCH_TXT):
                    self._fs.remove(FETCH_TXT)
                log.info("Removed empty %s", FETCH_TXT)
            return

        text = "".join(e.format() + "\n" for e in entries)
        with convert_fs_errors("write", FETCH_TXT):
            atomic_write_text(self._fs, FETCH_TXT, text, self.encoding)
        log.info("Wrote %s (%d entries)", FETCH_TXT, len(entries))

    def destinations(self):
        """
        return the set of root-relative destination paths declared
        """
        return set(e.path for e in self.read())
