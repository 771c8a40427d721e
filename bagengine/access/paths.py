"""
Functions for locating the well-known parts of a bag, plus the Path class
for pointing to a location within a filesystem opened via the fs module.

The functions in this module are pure:  they compute names and paths but
never touch the filesystem.  Bag paths always use a forward slash ('/') as
the delimiter, regardless of the platform.
"""
import os, re

import fs.path
from fs.errors import IllegalBackReference

from ..constants import (PAYLOAD, TAG, MANIFEST_PREFIXES, PAYLOAD_DIR,
                         BAGIT_TXT, BAG_INFO_TXT, FETCH_TXT)

_manifestre = re.compile(r"^(tag)?manifest-([\w\-]+)\.txt$")

def payload_dir(root):
    """
    return the path to the payload directory of the bag with the given root
    """
    return fs.path.join(root, PAYLOAD_DIR)

def bagit_file(root):
    return fs.path.join(root, BAGIT_TXT)

def bag_info_file(root):
    return fs.path.join(root, BAG_INFO_TXT)

def fetch_file(root):
    return fs.path.join(root, FETCH_TXT)

def manifest_name(algorithm):
    """
    return the name of the payload manifest file for the given algorithm
    """
    return "{0}{1}.txt".format(MANIFEST_PREFIXES[PAYLOAD], algorithm)

def tagmanifest_name(algorithm):
    """
    return the name of the tag manifest file for the given algorithm
    """
    return "{0}{1}.txt".format(MANIFEST_PREFIXES[TAG], algorithm)

def manifest_path(root, kind, algorithm):
    """
    return the path to a manifest file of a given kind

    :param str root:       the bag's root directory
    :param str kind:       either PAYLOAD or TAG
    :param str algorithm:  the name of the checksum algorithm
    """
    if kind == PAYLOAD:
        return fs.path.join(root, manifest_name(algorithm))
    if kind == TAG:
        return fs.path.join(root, tagmanifest_name(algorithm))
    raise ValueError("Not a manifest kind: " + str(kind))

def algorithm_of(filename):
    """
    return a (kind, algorithm) 2-tuple for the given manifest file name or
    None if the name is not that of a manifest.
    """
    m = _manifestre.match(fs.path.basename(filename))
    if not m:
        return None
    return ((m.group(1) and TAG) or PAYLOAD, m.group(2))

def payload_to_bag(relpath):
    """
    convert a path relative to the payload directory to one relative to the
    bag's root directory.
    """
    return "/".join([PAYLOAD_DIR, relpath.lstrip('/')])

def bag_to_payload(bagpath):
    """
    convert a path relative to the bag's root directory to one relative to
    the payload directory.  None is returned if the path does not point into
    the payload directory.
    """
    bagpath = bagpath.lstrip('/')
    pfx = PAYLOAD_DIR + '/'
    if not bagpath.startswith(pfx) or len(bagpath) == len(pfx):
        return None
    return bagpath[len(pfx):]

def is_dangerous(path):
    """
    Return true if path looks dangerous, i.e. potentially operates
    outside the bagging directory structure, e.g. ~/.bashrc,
    ../../../secrets.json, \\\\?\\c:\\, D:\\sys32\\cmd.exe
    """
    if not path:
        return True
    if fs.path.isabs(path) or os.path.isabs(path):
        return True
    if re.match(r'^[A-Za-z]:', path) or path.startswith('\\'):
        return True
    if os.path.expanduser(path) != path:
        return True
    if os.path.expandvars(path) != path:
        return True
    try:
        norm = fs.path.normpath(path)
    except IllegalBackReference:
        return True
    return norm.startswith('../') or norm == '..'

class Path(object):
    """
    a file within a specific FS instance, used to name a source to copy
    into a bag from a filesystem other than local disk
    """
    def __init__(self, filesys, path, prefix=None):
        """
        wrap a path within a filesystem, given as an FS object
        :param filesys FS:  the filesystem, usually as an FS instance,
                            where the path is located
        :param path str:    the path to the location within the filesystem
        :param prefix str:  a prefix to use to represent the filesystem in
                            the string representation of the full path.  It
                            will be prepended to the path value, so it should
                            include any desired delimiters
        """
        self.fs = filesys
        self.path = str(path)
        if prefix is None:
            prefix = repr(filesys) + ":"
        self._pfx = prefix

    def isfile(self):
        """
        return true if the path points to a file that exists in the filesystem
        """
        return self.fs.isfile(self.path)

    def __str__(self):
        return "{0}{1}".format(self._pfx, self.path)

    def __repr__(self):
        return "{0}:{1}".format(repr(self.fs), self.path)
