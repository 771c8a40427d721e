"""
Reading, writing, and checking of a bag's checksum manifests.

A ManifestStore holds no state about a bag beyond a handle to its
filesystem; each call reads or writes the manifest files directly.  Payload
manifests list paths relative to the bag's root directory on disk (i.e. with
a leading "data/"), as the BagIt standard requires, but the records exchanged
with callers carry paths relative to the payload directory.  Tag manifests
list (and exchange) paths relative to the bag's root directory.
"""
import re, logging
from collections import OrderedDict, namedtuple

import fs.path
from bagit import _encode_filename, _decode_filename, UNICODE_BYTE_ORDER_MARK

from ..constants import PAYLOAD, TAG, ALGORITHM_PREFERENCE, TAG_ENCODING
from .exceptions import (ManifestParseError, UnsafePathError, IOFailure,
                         UnsupportedAlgorithm, convert_fs_errors)
from .checksum import HashlibChecksumProvider
from .oxum import oxum
from .paths import (manifest_path, algorithm_of, payload_to_bag,
                    bag_to_payload, is_dangerous)
from .report import ManifestReport, VerificationReport, ChecksumMismatch

log = logging.getLogger(__name__)

ManifestRecord = namedtuple('ManifestRecord', "algorithm checksum path".split())
TagManifestRecord = namedtuple('TagManifestRecord',
                               "algorithm checksum path".split())

_hexre = re.compile(r'^[0-9a-fA-F]+$')

def order_algorithms(algorithms, preference=ALGORITHM_PREFERENCE):
    """
    sort a collection of algorithm names according to a preference order.
    Names not in the preference list follow the preferred ones in
    alphabetical order.
    """
    algorithms = set(algorithms)
    out = [a for a in preference if a in algorithms]
    out += sorted(algorithms.difference(preference))
    return out

def atomic_write_text(filesys, path, text, encoding=TAG_ENCODING):
    """
    replace the contents of a file such that readers see either the old
    contents or the new contents, never a partially written file.  The text
    is first written to a temporary file in the same directory which is then
    renamed over the target.
    """
    tmp = path + ".tmp"
    try:
        filesys.writetext(tmp, text, encoding=encoding)
        filesys.move(tmp, path, overwrite=True)
    except Exception:
        if filesys.exists(tmp):
            filesys.remove(tmp)
        raise

class ManifestStore(object):
    """
    a service for reading and writing the manifest files of a bag
    """

    def __init__(self, bagfs, checksums=None, preference=ALGORITHM_PREFERENCE,
                 encoding=TAG_ENCODING):
        """
        :param FS bagfs:   the filesystem rooted at the bag's root directory
        :param ChecksumProvider checksums:  the provider to compute checksums
                           with (default: a HashlibChecksumProvider)
        :param preference: the algorithm preference order
        :type preference:  list of str
        :param str encoding:  the encoding of the manifest files
        """
        self._fs = bagfs
        if checksums is None:
            checksums = HashlibChecksumProvider()
        self.checksums = checksums
        self.preference = tuple(preference)
        self.encoding = encoding

    def filename(self, kind, algorithm):
        """
        return the name of the manifest file of the given kind and algorithm
        """
        return manifest_path("", kind, algorithm)

    def exists(self, kind, algorithm):
        return self._fs.isfile(self.filename(kind, algorithm))

    def algorithms(self, kind):
        """
        return the algorithms for which a manifest of the given kind exists,
        in preference order.
        """
        found = []
        with convert_fs_errors("list manifests"):
            for name in self._fs.listdir("/"):
                if name.endswith(".txt.tmp") and algorithm_of(name[:-4]):
                    log.warning("Ignoring stale temporary file: %s", name)
                    continue
                parsed = algorithm_of(name)
                if parsed and parsed[0] == kind and self._fs.isfile(name):
                    found.append(parsed[1])
        return order_algorithms(found, self.preference)

    def _record_type(self, kind):
        if kind == PAYLOAD:
            return ManifestRecord
        if kind == TAG:
            return TagManifestRecord
        raise ValueError("Not a manifest kind: " + str(kind))

    def read(self, kind, algorithm):
        """
        read the manifest of the given kind and algorithm.

        :param str kind:       either PAYLOAD or TAG
        :param str algorithm:  the checksum algorithm of the manifest
        :return:  a list of ManifestRecords (for PAYLOAD) or TagManifestRecords
                  (for TAG) in file order, with checksums as they appear in
                  the file; the list is empty if the manifest
                  does not exist.
        :raises ManifestParseError:  if a line is malformed or a path is
                  listed twice
        :raises UnsafePathError:  if a listed path points outside of the bag
        """
        rectype = self._record_type(kind)
        filename = self.filename(kind, algorithm)
        if not self._fs.isfile(filename):
            return []

        with convert_fs_errors("read manifest", filename):
            text = self._fs.readtext(filename, encoding=self.encoding)

        if text.startswith(UNICODE_BYTE_ORDER_MARK):
            log.warning("%s contains an unnecessary byte-order mark", filename)
            text = text[1:]

        out = []
        seen = set()
        for lineno, line in enumerate(text.splitlines(), 1):
            line = line.strip()
            if not line:
                continue

            entry = line.split(None, 1)
            if len(entry) != 2 or not _hexre.match(entry[0]):
                raise ManifestParseError(filename, lineno, line)

            path = self._parse_path(kind, entry[1], filename)
            if path in seen:
                raise ManifestParseError(filename, lineno, line,
                             "{0}, line {1}: {2} is listed multiple times"
                             .format(filename, lineno, path))
            seen.add(path)
            out.append(rectype(algorithm, entry[0], path))

        return out

    def _parse_path(self, kind, path, filename):
        path = _decode_filename(path.lstrip('*'))
        if is_dangerous(path):
            raise UnsafePathError(path, 'Path "{0}" in manifest "{1}" is unsafe'
                                        .format(path, filename))
        path = fs.path.normpath(path)
        if kind == PAYLOAD:
            # a line without the "data/" prefix is taken as payload-relative
            path = bag_to_payload(path) or path
        return path

    def write(self, kind, algorithm, records):
        """
        write out a manifest, replacing any existing version atomically.

        :param str kind:       either PAYLOAD or TAG
        :param str algorithm:  the checksum algorithm of the manifest
        :param records:        the records to write, in the order they should
                               appear
        :raises ValueError:    if a record belongs to a different algorithm
                               or a path appears more than once
        """
        filename = self.filename(kind, algorithm)
        lines = []
        seen = set()
        for rec in records:
            if rec.algorithm != algorithm:
                raise ValueError("{0} record cannot be written to {1}"
                                 .format(rec.algorithm, filename))
            if rec.path in seen:
                raise ValueError("{0} listed more than once for {1}"
                                 .format(rec.path, filename))
            seen.add(rec.path)

            if is_dangerous(rec.path):
                raise UnsafePathError(rec.path)
            path = rec.path
            if kind == PAYLOAD:
                path = payload_to_bag(path)
            lines.append("{0}  {1}\n".format(rec.checksum,
                                             _encode_filename(path)))

        with convert_fs_errors("write manifest", filename):
            atomic_write_text(self._fs, filename, "".join(lines), self.encoding)
        log.info("Wrote %s (%d entries)", filename, len(lines))

    def remove(self, kind, algorithm):
        """
        delete the manifest of the given kind and algorithm, if it exists
        """
        filename = self.filename(kind, algorithm)
        if self._fs.isfile(filename):
            with convert_fs_errors("remove manifest", filename):
                self._fs.remove(filename)
            log.info("Removed %s", filename)

    def drift(self, algorithm, present_paths):
        """
        compare a payload manifest with the payload actually present without
        computing any checksums.

        :param str algorithm:  the algorithm of the payload manifest
        :param present_paths:  the payload-relative paths of the files present
        :return:  a 2-tuple of lists (missing, extra): the listed paths not
                  present and the present paths not listed
        """
        present = set(present_paths)
        records = self.read(PAYLOAD, algorithm)
        listed = set(r.path for r in records)
        missing = [r.path for r in records if r.path not in present]
        extra = sorted(present - listed)
        return (missing, extra)

    def _bagpath(self, kind, path):
        if kind == PAYLOAD:
            return payload_to_bag(path)
        return path

    def digest(self, kind, path, algorithms):
        """
        compute the checksums of a file in the bag.

        :param str kind:  PAYLOAD if the path is relative to the payload
                          directory; TAG if relative to the root directory
        :param str path:  the path to the file
        :param algorithms:  the algorithms to compute
        :return:  a dict mapping algorithm names to hex digests
        """
        bagpath = self._bagpath(kind, path)
        log.debug("Computing %s checksum(s) for %s", "/".join(algorithms),
                  bagpath)
        with convert_fs_errors("read file", bagpath):
            with self._fs.openbin(bagpath) as fd:
                return self.checksums.digest_all(fd, algorithms)

    def compute(self, kind, paths, algorithms):
        """
        compute the manifest records for a set of files, reading each file
        only once.

        :param str kind:   PAYLOAD or TAG, indicating the kind of manifest the
                           records are for (and how the paths are rooted)
        :param paths:      the paths to the files
        :param algorithms: the algorithms to compute records for
        :return:  an OrderedDict mapping each algorithm to a list of records
                  in the order of the given paths
        :raises UnsupportedAlgorithm:  if any algorithm is not supported
        """
        rectype = self._record_type(kind)
        algorithms = list(algorithms)
        for alg in algorithms:
            if not self.checksums.supports(alg):
                raise UnsupportedAlgorithm(alg)

        out = OrderedDict((alg, []) for alg in algorithms)
        for path in paths:
            digests = self.digest(kind, path, algorithms)
            for alg in algorithms:
                out[alg].append(rectype(alg, digests[alg], path))
        return out

    def verify(self, bag, tags=True):
        """
        check the bag's payload (and, optionally, its tag files) against its
        manifests.  Integrity problems never cause an exception to be raised;
        they are captured in the returned report.

        :param BagDirectory bag:  the bag to verify
        :param bool tags:         if True, also check the tag manifests
        :rtype: VerificationReport
        """
        report = VerificationReport(str(bag))
        present = set(bag.relative_paths())

        pending = set()
        for entry in bag.fetch_entries():
            path = bag_to_payload(entry.path)
            if path and path not in present:
                pending.add(path)
        report.pending_fetch = sorted(pending)

        manifests = self._read_checkable(PAYLOAD, report)
        listed = set()
        for records in manifests.values():
            listed.update(r.path for r in records)
        extra = sorted(present - listed)

        for alg, records in manifests.items():
            mrep = ManifestReport(PAYLOAD, alg)
            mrep.extra = list(extra)
            report.add(mrep)
            for rec in records:
                if rec.path not in present and rec.path in pending:
                    continue
                if rec.path not in present:
                    mrep.missing.append(rec.path)

        self._check_checksums(PAYLOAD, manifests, present, report)

        if tags:
            manifests = self._read_checkable(TAG, report)
            tagfiles = set()
            for alg, records in manifests.items():
                mrep = ManifestReport(TAG, alg)
                report.add(mrep)
                for rec in records:
                    if self._fs.isfile(rec.path):
                        tagfiles.add(rec.path)
                    else:
                        mrep.missing.append(rec.path)
            self._check_checksums(TAG, manifests, tagfiles, report)

        declared = bag.info.get('Payload-Oxum')
        if isinstance(declared, list):
            log.warning("%s: bag-info.txt defines multiple Payload-Oxum values",
                        bag)
            declared = declared[0]
        report.declared_oxum = declared
        # always taken from the live payload, never from a cached value
        report.actual_oxum = oxum(bag.payload_entries())

        log.info("Verified %s: %s", bag,
                 (report.is_valid() and "valid") or "invalid")
        return report

    def _read_checkable(self, kind, report):
        # read the manifests of a kind that can be checked, noting in the
        # report those that can't
        out = OrderedDict()
        for alg in self.algorithms(kind):
            if not self.checksums.supports(alg):
                report.errors.append(str(UnsupportedAlgorithm(alg)))
                continue
            try:
                out[alg] = self.read(kind, alg)
            except (ManifestParseError, UnsafePathError) as ex:
                report.errors.append(str(ex))
        return out

    def _check_checksums(self, kind, manifests, present, report):
        # recompute the checksums of the files present, each file once
        expected = OrderedDict()
        for alg, records in manifests.items():
            for rec in records:
                if rec.path in present:
                    expected.setdefault(rec.path, OrderedDict())[alg] = \
                        rec.checksum

        reports = (kind == PAYLOAD and report.payload) or report.tag
        for path, hashes in expected.items():
            try:
                digests = self.digest(kind, path, list(hashes.keys()))
            except IOFailure as ex:
                log.warning("Unable to compute checksum for %s: %s", path, ex)
                digests = dict((alg, None) for alg in hashes)

            for alg, checksum in hashes.items():
                # hex digests compare without regard to case
                if digests[alg] != checksum.lower():
                    mm = ChecksumMismatch(path, checksum, digests[alg])
                    log.warning("%s: %s checksum mismatch for %s",
                                report.target, alg, path)
                    reports[alg].mismatched.append(mm)
