"""
Common data about the bag layout managed by this engine.
"""
BAGIT_VERSION = "1.0"
TAG_ENCODING = "UTF-8"
SOFTWARE_AGENT = "bagengine v0.1"

PAYLOAD_DIR = "data"
BAGIT_TXT = "bagit.txt"
BAG_INFO_TXT = "bag-info.txt"
FETCH_TXT = "fetch.txt"

# manifest kinds
PAYLOAD = "payload"
TAG = "tag"
MANIFEST_PREFIXES = { PAYLOAD: "manifest-", TAG: "tagmanifest-" }

# the order in which manifests are consulted when more than one algorithm
# is present; the first tag manifest found in this order is "the" tag manifest
ALGORITHM_PREFERENCE = ("sha512", "sha256", "sha1", "md5")

# the algorithms used when a bag has no payload manifest yet
DEFAULT_ALGORITHMS = ("sha256",)

def _2int(sint):
    try:
        return int(sint)
    except ValueError:
        return -1

class Version(object):
    """
    a version class that can facilitate comparisons
    """

    def __init__(self, vers):
        """
        convert a version string to a Version instance
        """
        if isinstance(vers, str):
            self._vs = vers
            self.fields = [_2int(v) for v  in self._vs.split('.')]
        elif isinstance(vers, tuple):
            self._vs = ".".join([str(v) for v in vers])
            self.fields = list(vers)
        else:
            raise TypeError("Input version is not str or tuple: " + str(vers))

    def __str__(self):
        return self._vs

    def __repr__(self):
        return "Version({0!r})".format(self._vs)

    def __eq__(self, other):
        if not isinstance(other, Version):
            other = Version(other)
        return self.fields == other.fields

    def __hash__(self):
        return hash(tuple(self.fields))

    def __lt__(self, other):
        if not isinstance(other, Version):
            other = Version(other)
        return self.fields < other.fields

    def __le__(self, other):
        if not isinstance(other, Version):
            other = Version(other)
        return self < other or self == other

    def __ge__(self, other):
        return not (self < other)
    def __gt__(self, other):
        return not self.__le__(other)
    def __ne__(self, other):
        return not (self == other)
