"""
The BagDirectory class, the main interface for creating and updating a bag
on local disk.

A BagDirectory is a view over a directory:  the set of payload files is
always taken from the directory itself, and the only state kept in memory is
a cached Payload-Oxum that is discarded whenever the payload is changed
through this interface.  Bookkeeping of the manifests, fetch.txt, and
bag-info.txt is delegated to the ManifestStore, FetchList, and BagInfo
services, respectively.

Note that no locking is done; a bag directory should only be updated by one
BagDirectory instance at a time.
"""
import os, logging

import fs.path
from fs.osfs import OSFS
from fs.copy import copy_file

from ..constants import (PAYLOAD, TAG, PAYLOAD_DIR, BAGIT_TXT, BAG_INFO_TXT,
                         FETCH_TXT, ALGORITHM_PREFERENCE, DEFAULT_ALGORITHMS,
                         TAG_ENCODING)
from .exceptions import (ConflictError, NotFoundError, UnsafePathError,
                         ManifestParseError, convert_fs_errors)
from .checksum import HashlibChecksumProvider
from .manifest import ManifestStore, ManifestRecord
from .fetch import FetchList, FetchEntry
from .info import BagInfo
from .oxum import PayloadEntry, oxum, parse_oxum
from .paths import (Path, is_dangerous, payload_to_bag, bag_to_payload,
                    algorithm_of, manifest_name)

log = logging.getLogger(__name__)

class BagDirectory(object):
    """
    a bag stored as a directory on local disk.  Instantiating this class
    establishes the bag's basic structure if it does not already exist.
    """

    def __init__(self, root, initial_tags=None,
                 algorithms=ALGORITHM_PREFERENCE, checksums=None,
                 encoding=TAG_ENCODING, logger=None, create=True):
        """
        open the bag with the given root directory, creating it as necessary.
        The root and payload directories are created if they do not exist.
        bagit.txt and bag-info.txt are written only if they do not already
        exist.

        :param str root:          the path to the bag's root directory
        :param dict initial_tags: tags to write into bag-info.txt if that
                                  file is created
        :param algorithms:        the algorithm preference order used when
                                  choosing among several manifests
        :type algorithms:  list of str
        :param ChecksumProvider checksums:  the provider used to compute
                                  checksums (default: HashlibChecksumProvider)
        :param str encoding:      the encoding to use for the tag files
        :param Logger logger:     a logger instance to send messages to
        :param bool create:       if False, open an existing bag without
                                  creating or writing anything
        :raises IOFailure:  if the root or payload directories cannot be
                            created
        :raises NotFoundError:  if create is False and root is not a bag
        """
        if not root:
            raise ValueError("BagDirectory: path to bag root directory not "
                             "provided")
        self.path = str(root).rstrip(os.sep) or os.sep
        self.log = logger or log
        if checksums is None:
            checksums = HashlibChecksumProvider()
        self.checksums = checksums

        if not create and not is_bag(self.path):
            raise NotFoundError(self.path, "Not an existing bag: " + self.path)

        created = not os.path.isdir(self.path)
        with convert_fs_errors("create bag directory", self.path):
            self._fs = OSFS(self.path, create=create)
            if create:
                self._fs.makedir(PAYLOAD_DIR, recreate=True)

        self.manifests = ManifestStore(self._fs, checksums, algorithms,
                                       encoding)
        self.fetch_list = FetchList(self._fs, encoding)
        self.tags = BagInfo(self._fs, encoding)
        self._oxum = None

        if not create:
            return
        if not self.tags.has_declaration():
            self.tags.write_declaration()
        if not self.tags.has_info():
            self.refresh_info(initial_tags)

        if created:
            self.log.info("Created new bag at %s", self.path)

    @property
    def name(self):
        """
        the name of the bag's root directory (without any parent path)
        """
        return os.path.basename(os.path.abspath(self.path))

    def __str__(self):
        return self.path

    def __repr__(self):
        return "BagDirectory({0!r})".format(self.path)

    @property
    def info(self):
        """
        the bag's descriptive metadata as read from bag-info.txt
        """
        return self.tags.read()

    @property
    def version(self):
        """
        the BagIt version declared in bagit.txt, as a Version instance
        """
        return self.tags.version()

    def declaration(self):
        """
        return the contents of bagit.txt as an OrderedDict
        """
        return self.tags.declaration()

    def _payload_path(self, relpath):
        # return the normalized payload-relative and root-relative forms of
        # a payload path
        if is_dangerous(relpath):
            raise UnsafePathError(relpath)
        relpath = fs.path.normpath(relpath).strip('/')
        if not relpath or relpath == '.':
            raise UnsafePathError(relpath, "Not a payload file path: " +
                                           repr(relpath))
        return relpath, payload_to_bag(relpath)

    def _tag_path(self, path):
        if is_dangerous(path):
            raise UnsafePathError(path)
        path = fs.path.normpath(path).strip('/')
        if not path or path == '.' or path == PAYLOAD_DIR or \
           bag_to_payload(path):
            raise UnsafePathError(path, "Tag file must be outside of the "
                                        "payload directory: " + path)
        return path

    def exists(self, relpath):
        """
        return True if a payload file or directory exists at the given path
        relative to the payload directory
        """
        return self._fs.exists(self._payload_path(relpath)[1])

    def syspath(self, relpath):
        """
        return the path on local disk to the payload file with the given path
        relative to the payload directory
        """
        return self._fs.getsyspath(self._payload_path(relpath)[1])

    # ----------------------------------------------------------------
    # payload enumeration

    def _islink(self, path):
        # OSFS.islink() fails on paths that don't exist (or dangling links)
        return os.path.islink(self._fs.getsyspath(path))

    def _scan(self, dirpath):
        # yield the regular files below dirpath, skipping symbolic links
        for info in self._fs.scandir(dirpath):
            path = fs.path.join(dirpath, info.name)
            if self._islink(path):
                continue
            if info.is_dir:
                for f in self._scan(path):
                    yield f
            else:
                yield path

    def list_payload_paths(self):
        """
        return the paths to the payload files, relative to the bag's root
        directory (i.e. each starting with "data/").  Only regular files are
        included:  directories and symbolic links are not.  The order is the
        order the files were found on disk; it may not be the same from call
        to call.

        This is a scan of the payload directory as it currently is; it does
        not consult the manifests.
        """
        with convert_fs_errors("list payload directory", PAYLOAD_DIR):
            if not self._fs.isdir(PAYLOAD_DIR):
                return []
            return list(self._scan(PAYLOAD_DIR))

    def relative_paths(self):
        """
        return the paths to the payload files, relative to the payload
        directory.
        """
        return [bag_to_payload(p) for p in self.list_payload_paths()]

    def payload_entries(self):
        """
        iterate through the payload files, yielding a PayloadEntry (with the
        payload-relative path and size in bytes) for each.
        """
        for path in self.list_payload_paths():
            with convert_fs_errors("determine size of", path):
                size = self._fs.getsize(path)
            yield PayloadEntry(bag_to_payload(path), size)

    def is_empty(self):
        """
        return True if the bag contains no payload files
        """
        return len(self.list_payload_paths()) == 0

    def list_tag_paths(self):
        """
        return the paths, relative to the bag's root directory, of the tag
        files declared in the bag's tag manifest.  When there are several tag
        manifests, the first in algorithm preference order is used.  The
        list is empty if there is no tag manifest.

        This reflects what the tag manifest declares, not what is actually
        present on disk.
        """
        algs = self.manifests.algorithms(TAG)
        if not algs:
            return []
        return [r.path for r in self.manifests.read(TAG, algs[0])]

    # ----------------------------------------------------------------
    # payload updates

    def _materialize(self, bagpath, source, writer):
        if writer is not None:
            with self._fs.openbin(bagpath, 'w') as fd:
                writer(fd)
        elif isinstance(source, Path):
            copy_file(source.fs, source.path, self._fs, bagpath)
        elif isinstance(source, (bytes, bytearray)):
            self._fs.writebytes(bagpath, bytes(source))
        elif isinstance(source, (str, os.PathLike)):
            with open(source, 'rb') as fd:
                self._fs.upload(bagpath, fd)
        else:
            self._fs.upload(bagpath, source)

    def _check_source(self, source, writer):
        if (source is None) == (writer is None):
            raise ValueError("Exactly one of source or writer must be given")
        if writer is not None and not callable(writer):
            raise ValueError("writer is not callable: " + repr(writer))
        if source is not None and \
           not isinstance(source, (Path, bytes, bytearray, str, os.PathLike)) \
           and not hasattr(source, 'read'):
            raise ValueError("Unsupported source type: " + repr(type(source)))
        if isinstance(source, Path) and not source.isfile():
            raise NotFoundError(str(source), "Source file not found: " +
                                str(source))

    def _add_file(self, bagpath, source, writer):
        # write a new file into the bag; a failure removes any partial copy
        self._check_source(source, writer)
        if self._fs.exists(bagpath) or self._islink(bagpath):
            raise ConflictError(bagpath)

        parent = fs.path.dirname(bagpath)
        if parent:
            with convert_fs_errors("create directory", parent):
                self._fs.makedirs(parent, recreate=True)

        try:
            with convert_fs_errors("write", bagpath):
                self._materialize(bagpath, source, writer)
        except Exception:
            if self._fs.exists(bagpath):
                self._fs.remove(bagpath)
            raise

    def _add_payload(self, relpath, source, writer):
        relpath, bagpath = self._payload_path(relpath)
        if self._fs.exists(bagpath) or self._islink(bagpath):
            raise ConflictError(relpath)
        if bagpath in self.fetch_list.destinations():
            raise ConflictError(relpath, "Payload file is declared in " +
                                FETCH_TXT + ": " + relpath)

        self._add_file(bagpath, source, writer)
        self._oxum = None
        self.log.debug("Added payload file: %s", relpath)
        return relpath

    def add_payload(self, relpath, source=None, writer=None):
        """
        add a file to the payload.  The content is taken either from a source
        or from a function that writes it out.  Any missing parent
        directories are created.  After the file is added, bag-info.txt is
        refreshed.

        :param str relpath:  the path to the new file relative to the payload
                             directory
        :param source:       the content to copy into the bag.  This can be
                             the path to a file on local disk, a Path instance,
                             a readable binary file object, or bytes.
        :param writer:       a function that accepts a binary file object
                             opened for writing and writes the content into it.
        :raises ConflictError:  if the file already exists in the bag or is
                             declared in fetch.txt
        :raises NotFoundError:  if the source is a Path to a file that does
                             not exist
        :raises IOFailure:   if the file cannot be written; no partial file is
                             left behind
        """
        relpath = self._add_payload(relpath, source, writer)
        self.refresh_info()
        return relpath

    def add_payload_batch(self, items):
        """
        add several files to the payload in the order given.  bag-info.txt is
        refreshed once, after the last file is added.

        The batch is not atomic:  if adding an item fails, the items before it
        remain in the bag (and bag-info.txt is still refreshed to account for
        them) and the exception is raised.

        :param items:  an iterable of (relpath, source) or
                       (relpath, source, writer) tuples; see add_payload()
        :return:  the number of files added
        """
        added = 0
        try:
            for item in items:
                relpath, source = item[0], item[1]
                writer = (len(item) > 2 and item[2]) or None
                self._add_payload(relpath, source, writer)
                added += 1
        finally:
            if added:
                self.refresh_info()
        return added

    def remove_payload(self, relpath):
        """
        delete a file from the payload.  Directories left empty are not
        removed; see collect_empty_directories().  Symbolic links are not
        payload files and cannot be removed this way.

        :param str relpath:  the path to the file relative to the payload
                             directory
        :raises NotFoundError:  if the file does not exist
        """
        relpath, bagpath = self._payload_path(relpath)
        if not self._fs.isfile(bagpath) or self._islink(bagpath):
            raise NotFoundError(relpath)

        with convert_fs_errors("remove", bagpath):
            self._fs.remove(bagpath)
        self._oxum = None
        self.log.debug("Removed payload file: %s", relpath)
        self.refresh_info()

    def read_payload(self, relpath):
        """
        open a payload file for reading.

        :param str relpath:  the path to the file relative to the payload
                             directory
        :return:  a readable binary file object or None if the file does not
                  exist as a regular payload file (a symbolic link does not
                  count)
        """
        relpath, bagpath = self._payload_path(relpath)
        if not self._fs.isfile(bagpath) or self._islink(bagpath):
            return None
        with convert_fs_errors("open", bagpath):
            return self._fs.openbin(bagpath)

    def _prune(self, dirpath, removed):
        # remove the empty directories below dirpath, returning True if
        # dirpath itself is left empty
        empty = True
        for info in list(self._fs.scandir(dirpath)):
            path = fs.path.join(dirpath, info.name)
            if info.is_dir and not self._islink(path) and \
               self._prune(path, removed):
                self._fs.removedir(path)
                removed.append(path)
            else:
                empty = False
        return empty

    def collect_empty_directories(self):
        """
        remove all directories below the payload directory that contain no
        files, directly or in any subdirectory.  The payload directory
        itself is never removed.

        :return:  the root-relative paths of the directories removed, deepest
                  first
        """
        removed = []
        with convert_fs_errors("remove empty directories from", PAYLOAD_DIR):
            self._prune(PAYLOAD_DIR, removed)
        if removed:
            self.log.info("Removed %d empty payload directories", len(removed))
        return removed

    # ----------------------------------------------------------------
    # descriptive metadata

    def compute_oxum(self):
        """
        return the Payload-Oxum ("BYTES.COUNT") for the payload as it is on
        disk.  The value is cached until the payload is next changed through
        this instance.
        """
        if self._oxum is None:
            self._oxum = oxum(self.payload_entries())
        return self._oxum

    def refresh_info(self, tags=None):
        """
        rewrite bag-info.txt so that its payload-derived tags (Payload-Oxum
        and Bag-Size) reflect the current payload.

        :param dict tags:  other tags to merge into bag-info.txt
        """
        nbytes, count = parse_oxum(self.compute_oxum())
        return self.tags.refresh(nbytes, count, tags)

    def update_info(self, tags):
        """
        merge the given tags into bag-info.txt (replacing the values of
        existing tags with the same names) and refresh the payload-derived
        tags.
        """
        return self.refresh_info(tags)

    # ----------------------------------------------------------------
    # manifests

    def _pending_fetch(self, present):
        pending = set()
        for entry in self.fetch_list.read():
            path = bag_to_payload(entry.path)
            if path not in present:
                pending.add(path)
        return pending

    def write_manifests(self, algorithms=None, tagmanifests=True):
        """
        (re-)generate the payload manifests from the current payload,
        computing the checksum of every payload file.  Records for files that
        are declared in fetch.txt but not present are carried over.

        :param algorithms:  the algorithms to write manifests for; by default,
                            those that already have one (or
                            DEFAULT_ALGORITHMS if there are none)
        :param bool tagmanifests:  if True, also regenerate the tag manifests
        """
        if algorithms is None:
            algorithms = self.manifests.algorithms(PAYLOAD) or \
                         list(DEFAULT_ALGORITHMS)

        present = sorted(self.relative_paths())
        pending = self._pending_fetch(set(present))
        computed = self.manifests.compute(PAYLOAD, present, algorithms)

        for alg, records in computed.items():
            if pending:
                try:
                    records += [r for r in self.manifests.read(PAYLOAD, alg)
                                  if r.path in pending]
                except ManifestParseError as ex:
                    self.log.warning("Discarding unreadable manifest: %s", ex)
                records.sort(key=lambda r: r.path)
            self.manifests.write(PAYLOAD, alg, records)

        self.log.info("Wrote payload manifests for %s", ", ".join(computed))
        if tagmanifests:
            self.write_tagmanifests()

    def reconcile_manifests(self, algorithms=None):
        """
        bring the existing payload manifests up to date with the payload
        without recomputing the checksums of files already listed:  records
        for files that no longer exist (and are not declared in fetch.txt)
        are dropped, and records are added for files not yet listed.
        Existing tag manifests are regenerated.

        :param algorithms:  the algorithms of the manifests to reconcile
                            (default: all existing payload manifests)
        :return:  a dict mapping each algorithm to a 2-tuple
                  (dropped, added) of lists of payload-relative paths
        """
        if algorithms is None:
            algorithms = self.manifests.algorithms(PAYLOAD)

        present = self.relative_paths()
        pending = self._pending_fetch(set(present))
        out = {}
        for alg in algorithms:
            missing, extra = self.manifests.drift(alg, present)
            dropped = set(p for p in missing if p not in pending)
            records = [r for r in self.manifests.read(PAYLOAD, alg)
                         if r.path not in dropped]
            if extra:
                records += self.manifests.compute(PAYLOAD, extra, [alg])[alg]
            self.manifests.write(PAYLOAD, alg, records)
            out[alg] = (sorted(dropped), extra)
            if dropped or extra:
                self.log.info("Reconciled %s: %d dropped, %d added",
                              manifest_name(alg), len(dropped), len(extra))

        self._update_tagmanifests()
        return out

    def _declared_tag_files(self):
        declared = []
        for alg in self.manifests.algorithms(TAG):
            try:
                records = self.manifests.read(TAG, alg)
            except ManifestParseError as ex:
                self.log.warning("Skipping unreadable tag manifest: %s", ex)
                continue
            for rec in records:
                if rec.path not in declared:
                    declared.append(rec.path)
        return declared

    def _tag_files(self, include=()):
        # the tag files to list in a tag manifest
        out = [BAGIT_TXT, BAG_INFO_TXT]
        if self.fetch_list.exists():
            out.append(FETCH_TXT)
        out += [manifest_name(a) for a in self.manifests.algorithms(PAYLOAD)]

        for path in self._declared_tag_files() + list(include):
            parsed = algorithm_of(path)
            if parsed and parsed[0] == TAG:
                continue
            if path not in out and self._fs.isfile(path):
                out.append(path)
        return out

    def write_tagmanifests(self, algorithms=None, include=()):
        """
        (re-)generate the tag manifests.  They will list bagit.txt,
        bag-info.txt, fetch.txt (if it exists), the payload manifests, and
        any other tag file already declared in a tag manifest that still
        exists.

        :param algorithms:  the algorithms to write tag manifests for; by
                            default, those that already have one (or those of
                            the payload manifests if there are none)
        :param include:     paths of additional tag files to list
        """
        if algorithms is None:
            algorithms = self.manifests.algorithms(TAG) or \
                         self.manifests.algorithms(PAYLOAD) or \
                         list(DEFAULT_ALGORITHMS)

        computed = self.manifests.compute(TAG, self._tag_files(include),
                                          algorithms)
        for alg, records in computed.items():
            self.manifests.write(TAG, alg, records)

    def _update_tagmanifests(self):
        if self.manifests.algorithms(TAG):
            self.write_tagmanifests()

    def add_tag_file(self, path, source=None, writer=None):
        """
        add a file outside of the payload directory and list it in the tag
        manifests (creating them if necessary).

        :param str path:  the path to the new file relative to the bag's root
                          directory
        :param source:    the content of the file; see add_payload()
        :param writer:    a function that writes the content; see
                          add_payload()
        :raises ConflictError:  if the file already exists
        """
        path = self._tag_path(path)
        if algorithm_of(path) or path in (BAGIT_TXT, BAG_INFO_TXT, FETCH_TXT):
            raise ConflictError(path, "Reserved tag file name: " + path)

        self._add_file(path, source, writer)
        self.log.debug("Added tag file: %s", path)
        self.write_tagmanifests(include=[path])
        return path

    def remove_tag_file(self, path, delete=False):
        """
        remove a tag file from the tag manifests.

        :param str path:     the path to the file relative to the bag's root
                             directory
        :param bool delete:  if True, delete the file from disk as well
        :raises NotFoundError:  if the file is not listed in any tag manifest
                             (or, when delete is True, does not exist)
        """
        path = self._tag_path(path)
        if delete:
            if not self._fs.isfile(path):
                raise NotFoundError(path)
            with convert_fs_errors("remove", path):
                self._fs.remove(path)
        elif path not in self._declared_tag_files():
            raise NotFoundError(path, "Tag file is not declared: " + path)

        for alg in self.manifests.algorithms(TAG):
            records = [r for r in self.manifests.read(TAG, alg)
                         if r.path != path]
            self.manifests.write(TAG, alg, records)
        self.log.debug("Removed tag file: %s", path)

    # ----------------------------------------------------------------
    # fetch declarations

    def fetch_entries(self):
        """
        return the FetchEntry tuples declared in fetch.txt
        """
        return self.fetch_list.read()

    def add_remote_file(self, url, relpath, size=None, checksums=None):
        """
        declare a payload file that is to be retrieved from a remote location.

        :param str url:      the location to retrieve the file from
        :param str relpath:  the file's path relative to the payload directory
        :param int size:     the file's size in bytes, if known
        :param dict checksums:  a mapping of algorithm names to the file's
                             checksums; each is recorded in the payload
                             manifest for that algorithm
        :raises ConflictError:  if the file is present in the payload or is
                             already declared
        """
        relpath, bagpath = self._payload_path(relpath)
        entries = self.fetch_list.read()
        if any(e.path == bagpath for e in entries):
            raise ConflictError(relpath, "Already declared in " + FETCH_TXT +
                                         ": " + relpath)
        entries.append(FetchEntry(url, size, bagpath))
        self.fetch_list.write(entries)

        for alg, checksum in (checksums or {}).items():
            records = [r for r in self.manifests.read(PAYLOAD, alg)
                         if r.path != relpath]
            records.append(ManifestRecord(alg, checksum.lower(), relpath))
            self.manifests.write(PAYLOAD, alg, records)

        self.log.debug("Declared remote file: %s <- %s", relpath, url)
        self._update_tagmanifests()

    def remove_remote_file(self, relpath):
        """
        remove a declaration from fetch.txt.  If the file is not present in
        the payload, its manifest records are removed as well.

        :raises NotFoundError:  if the file is not declared in fetch.txt
        """
        relpath, bagpath = self._payload_path(relpath)
        entries = self.fetch_list.read()
        keep = [e for e in entries if e.path != bagpath]
        if len(keep) == len(entries):
            raise NotFoundError(relpath, "Not declared in " + FETCH_TXT +
                                         ": " + relpath)
        self.fetch_list.write(keep)

        if not self._fs.isfile(bagpath):
            for alg in self.manifests.algorithms(PAYLOAD):
                records = self.manifests.read(PAYLOAD, alg)
                if any(r.path == relpath for r in records):
                    self.manifests.write(PAYLOAD, alg,
                                         [r for r in records
                                            if r.path != relpath])

        self.log.debug("Removed remote file declaration: %s", relpath)
        self._update_tagmanifests()

    # ----------------------------------------------------------------
    # verification

    def verify(self, tags=True):
        """
        check the bag's files against its manifests.

        :param bool tags:  if True, also check the tag manifests
        :rtype: VerificationReport
        """
        return self.manifests.verify(self, tags)


def open_or_create(root, initial_tags=None, **kw):
    """
    open the bag at the given root directory, creating it if necessary.
    Keyword arguments are passed on to the BagDirectory constructor.

    :rtype: BagDirectory
    """
    return BagDirectory(root, initial_tags, **kw)

def is_bag(root):
    """
    return True if the given directory appears to be a bag (i.e. it contains
    a bagit.txt file).
    """
    return os.path.isfile(os.path.join(root, BAGIT_TXT))
