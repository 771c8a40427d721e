"""
The interface for computing checksums of bag files along with a default
implementation based on hashlib.
"""
import hashlib
from abc import ABCMeta, abstractmethod

from bagit import HASH_BLOCK_SIZE

from .exceptions import UnsupportedAlgorithm


class ChecksumProvider(object, metaclass=ABCMeta):
    """
    an interface for calculating the digest of a stream of bytes under a
    named algorithm
    """

    @abstractmethod
    def supports(self, algorithm):
        """
        return True if the given algorithm can be computed by this provider
        """
        raise NotImplementedError()

    @abstractmethod
    def digest(self, stream, algorithm):
        """
        read the given stream to its end and return its digest as a lower-case
        hexadecimal string.

        :param stream:         a readable binary file-like object
        :param str algorithm:  the name of the algorithm (e.g. "sha256")
        :raises UnsupportedAlgorithm:  if the algorithm is not supported
        """
        raise NotImplementedError()

    def digest_all(self, stream, algorithms):
        """
        read the given stream once and return a dictionary of digests keyed
        by algorithm name.

        This default implementation requires a seekable stream; subclasses
        are encouraged to override it with a single-pass implementation.
        """
        out = {}
        for alg in algorithms:
            stream.seek(0)
            out[alg] = self.digest(stream, alg)
        return out

class HashlibChecksumProvider(ChecksumProvider):
    """
    a ChecksumProvider that delegates to the hashlib module.  Any algorithm
    known to hashlib.new() is supported.
    """

    def __init__(self, blocksize=HASH_BLOCK_SIZE):
        """
        :param int blocksize:  the number of bytes to read at a time
        """
        self.blocksize = blocksize

    def supports(self, algorithm):
        try:
            self._new(algorithm)
        except UnsupportedAlgorithm:
            return False
        return True

    def _new(self, algorithm):
        try:
            hasher = hashlib.new(algorithm)
        except (ValueError, TypeError):
            raise UnsupportedAlgorithm(algorithm)

        # variable-length digests (shake_*) can't be expressed in a manifest
        if hasher.digest_size == 0:
            raise UnsupportedAlgorithm(algorithm)
        return hasher

    def digest(self, stream, algorithm):
        return self.digest_all(stream, [algorithm])[algorithm]

    def digest_all(self, stream, algorithms):
        hashers = dict((alg, self._new(alg)) for alg in algorithms)

        while True:
            block = stream.read(self.blocksize)
            if not block:
                break
            for h in hashers.values():
                h.update(block)

        return dict((alg, h.hexdigest()) for alg, h in hashers.items())
