"""
Functions for the Payload-Oxum, the "octet-stream sum" of a bag's payload:
the total number of payload bytes and the number of payload files, written
as "BYTES.COUNT".
"""
import re
from collections import namedtuple

PayloadEntry = namedtuple('PayloadEntry', "path size".split())

_oxumre = re.compile(r'^(\d+)\.(\d+)$')

def oxum(payload_entries):
    """
    calculate the Payload-Oxum string for a collection of payload files.  The
    result does not depend on the order of the entries.

    :param payload_entries:  an iterable of PayloadEntry instances (or any
                             object with a size attribute)
    :rtype: str
    """
    nbytes = 0
    count = 0
    for entry in payload_entries:
        nbytes += entry.size
        count += 1
    return format_oxum(nbytes, count)

def format_oxum(nbytes, count):
    """
    return the Payload-Oxum string for a given byte total and file count
    """
    return "{0}.{1}".format(nbytes, count)

def parse_oxum(text):
    """
    split a Payload-Oxum string into its byte total and file count
    :return:  a 2-tuple of ints (bytes, count)
    :raises ValueError:  if the value is not of the form BYTES.COUNT
    """
    m = _oxumre.match(text.strip())
    if not m:
        raise ValueError("Malformed Payload-Oxum value: " + repr(text))
    return (int(m.group(1)), int(m.group(2)))

def format_bytes(nbytes):
    """
    format a byte count as a human-readable size (e.g. "4.875 kB"), as used
    for the Bag-Size tag
    """
    prefs = ["", "k", "M", "G", "T"]
    ordr = 0
    while nbytes >= 1000.0 and ordr < 4:
        nbytes /= 1000.0
        ordr += 1
    pref = prefs[ordr]
    ordr = 0
    while nbytes >= 10.0:
        nbytes /= 10.0
        ordr += 1
    nbytes = "{0:5f}".format(round(nbytes, 3) * 10**ordr)
    if '.' in nbytes:
        nbytes = re.sub(r"0+$", "", nbytes)
    if nbytes.endswith('.'):
        nbytes = nbytes[:-1]
    return "{0} {1}B".format(nbytes, pref)
