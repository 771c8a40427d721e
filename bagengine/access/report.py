"""
containers for the outcome of verifying a bag's contents against its
manifests
"""
from collections import OrderedDict, namedtuple

from ..constants import PAYLOAD, TAG
from .paths import manifest_name, tagmanifest_name

ChecksumMismatch = namedtuple('ChecksumMismatch', "path expected actual".split())

class ManifestReport(object):
    """
    the problems found when checking one manifest file against the files it
    describes.  Problems fall into three categories:

    missing
        paths listed in the manifest that do not exist on disk
    extra
        files on disk that are not listed in any manifest of the same kind
        (only determined for payload manifests)
    mismatched
        ChecksumMismatch tuples for files whose recomputed checksum differs
        from the recorded one
    """

    def __init__(self, kind, algorithm):
        self.kind = kind
        self.algorithm = algorithm
        self.missing = []
        self.extra = []
        self.mismatched = []

    @property
    def filename(self):
        """
        the name of the manifest file this report is about
        """
        if self.kind == TAG:
            return tagmanifest_name(self.algorithm)
        return manifest_name(self.algorithm)

    def is_clean(self):
        """
        return True if no problems were found
        """
        return not (self.missing or self.extra or self.mismatched)

    def failures(self):
        """
        return a list of one-line descriptions of each problem found
        """
        out = []
        for path in self.missing:
            out.append("{0}: listed file is missing: {1}".format(self.filename,
                                                                 path))
        for path in self.extra:
            out.append("{0}: file is not listed: {1}".format(self.filename,
                                                             path))
        for mm in self.mismatched:
            out.append("{0}: checksum mismatch for {1}: expected {2}, found {3}"
                       .format(self.filename, mm.path, mm.expected, mm.actual))
        return out

    def __repr__(self):
        return "<ManifestReport {0}: {1} missing, {2} extra, {3} mismatched>" \
            .format(self.filename, len(self.missing), len(self.extra),
                    len(self.mismatched))

class VerificationReport(object):
    """
    the outcome of verifying a bag:  one ManifestReport per payload manifest
    (in the payload attribute) and per tag manifest (in the tag attribute),
    both keyed by algorithm, plus supplementary information.

    A bag is valid when the report for at least one payload manifest shows no
    problems.
    """

    def __init__(self, target):
        """
        :param str target:  a name for the bag that was verified
        """
        self.target = target
        self.payload = OrderedDict()
        self.tag = OrderedDict()

        # fetch.txt destinations that are not (yet) present in the payload
        self.pending_fetch = []

        # problems that kept a manifest from being checked at all
        self.errors = []

        self.declared_oxum = None
        self.actual_oxum = None

    def add(self, mreport):
        """
        add a ManifestReport to these results
        """
        if mreport.kind == PAYLOAD:
            self.payload[mreport.algorithm] = mreport
        else:
            self.tag[mreport.algorithm] = mreport

    def is_valid(self):
        """
        return True if at least one payload manifest was checked and found to
        have no missing, extra, or mismatched entries.
        """
        return any(r.is_clean() for r in self.payload.values())

    def is_complete(self):
        """
        return True if at least one payload manifest lists exactly the files
        found in the payload directory (ignoring checksums).
        """
        return any(not r.missing and not r.extra for r in self.payload.values())

    def tags_ok(self):
        return all(r.is_clean() for r in self.tag.values())

    def oxum_ok(self):
        """
        return True if the Payload-Oxum declared in bag-info.txt (if any)
        matches the payload actually present.
        """
        return self.declared_oxum is None or \
               self.declared_oxum == self.actual_oxum

    def ok(self):
        """
        return True if every check passed:  the bag is valid, the tag
        manifests agree with their tag files, the Payload-Oxum is correct, and
        every manifest could be read.
        """
        return self.is_valid() and self.tags_ok() and self.oxum_ok() and \
               not self.errors

    def failures(self):
        """
        return a list of one-line descriptions of each problem found
        """
        out = list(self.errors)
        if not self.payload and not self.errors:
            out.append("No payload manifest found")
        for r in list(self.payload.values()) + list(self.tag.values()):
            out.extend(r.failures())
        if not self.oxum_ok():
            out.append("Payload-Oxum mismatch: declared {0}, found {1}"
                       .format(self.declared_oxum, self.actual_oxum))
        return out

    def __str__(self):
        status = (self.is_valid() and "valid") or "invalid"
        return "{0}: {1} ({2} problems)".format(self.target, status,
                                                len(self.failures()))
