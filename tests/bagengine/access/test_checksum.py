# encoding: utf-8

import os, pdb, io, hashlib
import unittest as test

import bagengine.access.checksum as cksum
from bagengine.access.exceptions import UnsupportedAlgorithm

class TestHashlibChecksumProvider(test.TestCase):

    def setUp(self):
        self.prov = cksum.HashlibChecksumProvider()
        self.data = b"Hello world!\n" * 1000

    def test_supports(self):
        self.assertTrue(self.prov.supports("sha256"))
        self.assertTrue(self.prov.supports("md5"))
        self.assertTrue(self.prov.supports("sha512"))
        self.assertFalse(self.prov.supports("goober"))
        self.assertFalse(self.prov.supports("shake_128"))

    def test_digest(self):
        self.assertEqual(self.prov.digest(io.BytesIO(self.data), "sha256"),
                         hashlib.sha256(self.data).hexdigest())
        self.assertEqual(self.prov.digest(io.BytesIO(b""), "md5"),
                         "d41d8cd98f00b204e9800998ecf8427e")

    def test_small_blocks(self):
        prov = cksum.HashlibChecksumProvider(blocksize=7)
        self.assertEqual(prov.digest(io.BytesIO(self.data), "sha1"),
                         hashlib.sha1(self.data).hexdigest())

    def test_digest_all(self):
        digests = self.prov.digest_all(io.BytesIO(self.data),
                                       ["sha256", "md5"])
        self.assertEqual(set(digests.keys()), set(["sha256", "md5"]))
        self.assertEqual(digests["md5"], hashlib.md5(self.data).hexdigest())
        self.assertEqual(digests["sha256"],
                         hashlib.sha256(self.data).hexdigest())

    def test_unsupported(self):
        with self.assertRaises(UnsupportedAlgorithm) as cm:
            self.prov.digest(io.BytesIO(self.data), "goober")
        self.assertEqual(cm.exception.algorithm, "goober")
        self.assertIn("goober", str(cm.exception))

class ReversingProvider(cksum.ChecksumProvider):
    # a toy provider relying on the default digest_all()
    def supports(self, algorithm):
        return algorithm == "rev"
    def digest(self, stream, algorithm):
        if algorithm != "rev":
            raise UnsupportedAlgorithm(algorithm)
        return stream.read()[::-1].hex()

class TestChecksumProvider(test.TestCase):

    def test_abstract(self):
        with self.assertRaises(TypeError):
            cksum.ChecksumProvider()

    def test_default_digest_all(self):
        prov = ReversingProvider()
        self.assertEqual(prov.digest_all(io.BytesIO(b"\x01\x02"), ["rev"]),
                         {"rev": "0201"})


if __name__ == '__main__':
    test.main()
