"""
Reading and writing of the bag's descriptive tag files: the bagit.txt
declaration and the bag-info.txt metadata.  Parsing is delegated to the
LOC bagit module.
"""
import re, logging
from collections import OrderedDict
from datetime import date

from bagit import _parse_tags, BagError

from ..constants import (BAGIT_TXT, BAG_INFO_TXT, BAGIT_VERSION, TAG_ENCODING,
                         SOFTWARE_AGENT, Version)
from .exceptions import convert_fs_errors
from .manifest import atomic_write_text
from .oxum import format_oxum, format_bytes

log = logging.getLogger(__name__)

_eolre = re.compile(r"\r\n|\n|\r")

def format_tags(tags):
    """
    render a mapping of tag names to values as the text of a tag file.  A
    value given as a list is written as one line per item.  Line breaks
    within values are removed.
    """
    out = []
    for name, values in tags.items():
        if not isinstance(values, list):
            values = [values]
        for value in values:
            out.append("{0}: {1}\n".format(name, _eolre.sub("", str(value))))
    return "".join(out)

def read_tags(filesys, path, encoding=TAG_ENCODING):
    """
    read a tag file into an OrderedDict.  A tag that appears more than once
    will have its values collected into a list.
    """
    tags = OrderedDict()
    if encoding.lower().replace('-', '') == 'utf8':
        encoding = 'utf-8-sig'
    with convert_fs_errors("read", path):
        with filesys.open(path, 'r', encoding=encoding) as fd:
            for name, value in _parse_tags(fd):
                if name not in tags:
                    tags[name] = value
                    continue

                if not isinstance(tags[name], list):
                    tags[name] = [tags[name], value]
                else:
                    tags[name].append(value)
    return tags

class BagInfo(object):
    """
    a service for reading and updating a bag's bagit.txt and bag-info.txt
    files.  This is the descriptive tag writer that a BagDirectory invokes
    whenever the payload changes.
    """

    def __init__(self, bagfs, encoding=TAG_ENCODING):
        self._fs = bagfs
        self.encoding = encoding

    def has_declaration(self):
        return self._fs.isfile(BAGIT_TXT)

    def has_info(self):
        return self._fs.isfile(BAG_INFO_TXT)

    def write_declaration(self, version=BAGIT_VERSION):
        """
        write the bagit.txt file
        """
        tags = OrderedDict([("BagIt-Version", str(version)),
                            ("Tag-File-Character-Encoding", self.encoding)])
        with convert_fs_errors("write", BAGIT_TXT):
            atomic_write_text(self._fs, BAGIT_TXT, format_tags(tags), "utf-8")

    def declaration(self):
        """
        read the bagit.txt file.

        :raises BagError:  if either of the required tags is missing
        """
        tags = read_tags(self._fs, BAGIT_TXT)
        missing = [t for t in ('BagIt-Version', 'Tag-File-Character-Encoding')
                     if t not in tags]
        if missing:
            raise BagError("Missing required tag in bagit.txt: " +
                           ', '.join(missing))
        return tags

    def version(self):
        """
        return the BagIt version declared in bagit.txt as a Version instance
        """
        return Version(self.declaration()['BagIt-Version'])

    def read(self):
        """
        return the contents of bag-info.txt as an OrderedDict (empty if the
        file does not exist)
        """
        if not self.has_info():
            return OrderedDict()
        return read_tags(self._fs, BAG_INFO_TXT, self.encoding)

    def write(self, tags):
        """
        replace the contents of bag-info.txt with the given tags
        """
        with convert_fs_errors("write", BAG_INFO_TXT):
            atomic_write_text(self._fs, BAG_INFO_TXT, format_tags(tags),
                              self.encoding)

    def refresh(self, nbytes, count, tags=None):
        """
        update bag-info.txt with tags derived from the payload, preserving
        all other tags.  Bagging-Date and Bag-Software-Agent are set only if
        not already present; Payload-Oxum and Bag-Size are always rewritten.

        :param int nbytes:  the total number of payload bytes
        :param int count:   the number of payload files
        :param dict tags:   additional tags to merge in before refreshing
        """
        info = self.read()
        if tags:
            info.update(tags)

        if not info.get('Bagging-Date'):
            info['Bagging-Date'] = date.today().isoformat()
        if not info.get('Bag-Software-Agent'):
            info['Bag-Software-Agent'] = SOFTWARE_AGENT
        info['Payload-Oxum'] = format_oxum(nbytes, count)
        info['Bag-Size'] = format_bytes(nbytes)

        self.write(info)
        log.debug("Updated %s: Payload-Oxum=%s", BAG_INFO_TXT,
                  info['Payload-Oxum'])
        return info
