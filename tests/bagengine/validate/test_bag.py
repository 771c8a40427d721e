# encoding: utf-8

import os, pdb, logging, hashlib
import tempfile, shutil
import unittest as test

import bagit

import bagengine.validate.bag as val
from bagengine.access.bag import BagDirectory
from bagengine.access.exceptions import ValidationFailure, NotFoundError

logging.basicConfig(filename='test.log', level=logging.DEBUG)

# But we do want any exceptions raised in the logging path to be raised:
logging.raiseExceptions = True

class TestBagValidator(test.TestCase):

    def setUp(self):
        self.tempdir = tempfile.mkdtemp()
        self.bagdir = os.path.join(self.tempdir, "samplebag")
        self.bag = BagDirectory(self.bagdir,
                                {"Source-Organization": "NIST"})
        self.bag.add_payload_batch([("a/b.txt", b"0123456789"),
                                    ("c.txt", b"hello"),
                                    ("d/e/f.json", b'{"a": 1}')])
        self.bag.write_manifests(["sha256", "md5"])

    def tearDown(self):
        shutil.rmtree(self.tempdir)

    def payload_file(self, relpath):
        return os.path.join(self.bagdir, "data", *relpath.split('/'))

    def test_ctor(self):
        v = val.BagValidator(self.bag)
        self.assertIs(v.bag, self.bag)
        self.assertTrue(v.tags)

        v = val.BagValidator(self.bagdir, tags=False)
        self.assertIsInstance(v.bag, BagDirectory)
        self.assertEqual(v.bag.path, self.bagdir)
        self.assertFalse(v.tags)

    def test_fresh_bag(self):
        v = val.BagValidator(self.bag)
        report = v.validate()
        self.assertTrue(report.is_valid())
        self.assertTrue(report.is_complete())
        self.assertTrue(report.ok(), report.failures())
        self.assertEqual(list(report.payload.keys()), ["sha256", "md5"])
        self.assertEqual(list(report.tag.keys()), ["sha256", "md5"])
        for rep in report.payload.values():
            self.assertEqual((rep.missing, rep.extra, rep.mismatched),
                             ([], [], []))
        self.assertEqual(report.declared_oxum, "23.3")
        self.assertEqual(report.actual_oxum, "23.3")
        self.assertEqual(report.pending_fetch, [])
        self.assertEqual(report.failures(), [])
        self.assertTrue(v.is_valid())
        self.assertIs(v.ensure_valid(True).__class__, report.__class__)

    def test_mismatch(self):
        # same size, different bytes
        with open(self.payload_file("c.txt"), 'wb') as fd:
            fd.write(b"jello")

        report = val.BagValidator(self.bagdir).validate()
        self.assertFalse(report.is_valid())
        self.assertTrue(report.is_complete())
        self.assertTrue(report.tags_ok())
        self.assertTrue(report.oxum_ok())
        for alg, rep in report.payload.items():
            self.assertEqual(rep.missing, [])
            self.assertEqual(rep.extra, [])
            self.assertEqual(len(rep.mismatched), 1)
            mm = rep.mismatched[0]
            self.assertEqual(mm.path, "c.txt")
            self.assertEqual(mm.actual, hashlib.new(alg, b"jello").hexdigest())
            self.assertEqual(mm.expected,
                             hashlib.new(alg, b"hello").hexdigest())
        self.assertEqual(len(report.failures()), 2)

        with self.assertRaises(ValidationFailure) as cm:
            val.validate_bag(self.bag)
        self.assertIs(cm.exception.report.__class__, report.__class__)
        self.assertIn("c.txt", str(cm.exception))

    def test_missing_and_extra(self):
        os.remove(self.payload_file("c.txt"))
        with open(self.payload_file("new.txt"), 'wb') as fd:
            fd.write(b"hello")

        report = self.bag.verify()
        self.assertFalse(report.is_valid())
        self.assertFalse(report.is_complete())
        for rep in report.payload.values():
            self.assertEqual(rep.missing, ["c.txt"])
            self.assertEqual(rep.extra, ["new.txt"])
            self.assertEqual(rep.mismatched, [])

        # an explicit repair restores validity
        self.bag.reconcile_manifests()
        self.assertTrue(self.bag.verify().is_valid())

    def test_oxum_mismatch(self):
        self.bag.tags.refresh(1, 1)
        self.bag.write_tagmanifests()

        report = val.validate_bag(self.bagdir)
        self.assertTrue(report.is_valid())
        self.assertFalse(report.oxum_ok())
        self.assertEqual(report.declared_oxum, "1.1")
        with self.assertRaises(ValidationFailure):
            val.validate_bag(self.bagdir, strict=True)

    def test_oxum_is_live(self):
        self.assertEqual(self.bag.compute_oxum(), "23.3")
        with open(self.payload_file("extra.txt"), 'wb') as fd:
            fd.write(b"0123456789")

        report = self.bag.verify()
        self.assertEqual(report.declared_oxum, "23.3")
        self.assertEqual(report.actual_oxum, "33.4")
        self.assertFalse(report.oxum_ok())
        self.assertFalse(report.ok())

        # a separate instance reaches the same verdict
        other = val.BagValidator(self.bagdir).validate()
        self.assertEqual(other.actual_oxum, report.actual_oxum)
        self.assertEqual(other.oxum_ok(), report.oxum_ok())

    def test_uppercase_checksums(self):
        mfile = os.path.join(self.bagdir, "manifest-sha256.txt")
        with open(mfile) as fd:
            text = fd.read()
        lines = [l.split("  ", 1) for l in text.splitlines()]
        with open(mfile, 'w') as fd:
            for cksum, path in lines:
                fd.write("{0}  {1}\n".format(cksum.upper(), path))

        report = self.bag.verify(tags=False)
        self.assertTrue(report.payload["sha256"].is_clean(),
                        report.failures())
        self.assertTrue(report.ok())

    def test_tag_problems(self):
        self.bag.update_info({"Contact-Name": "Gurn Cranston"})
        report = self.bag.verify()
        self.assertTrue(report.is_valid())
        self.assertFalse(report.tags_ok())
        self.assertEqual([m.path for m in report.tag["sha256"].mismatched],
                         ["bag-info.txt"])

        report = self.bag.verify(tags=False)
        self.assertEqual(len(report.tag), 0)
        self.assertTrue(report.ok())

    def test_bad_manifest(self):
        with open(os.path.join(self.bagdir, "manifest-md5.txt"), 'a') as fd:
            fd.write("this line is garbage\n")
        with open(os.path.join(self.bagdir, "manifest-goober.txt"), 'w') as fd:
            fd.write("abcdef  data/c.txt\n")

        report = self.bag.verify(tags=False)
        self.assertEqual(list(report.payload.keys()), ["sha256"])
        self.assertEqual(len(report.errors), 2)
        self.assertTrue(report.is_valid())
        self.assertFalse(report.ok())

    def test_not_a_bag(self):
        target = os.path.join(self.tempdir, "notabag")
        os.makedirs(target)
        with open(os.path.join(target, "notes.txt"), 'w') as fd:
            fd.write("just notes")

        with self.assertRaises(NotFoundError):
            val.BagValidator(target).validate()
        with self.assertRaises(NotFoundError):
            val.validate_bag(target)
        self.assertEqual(os.listdir(target), ["notes.txt"])

        target = os.path.join(self.tempdir, "goober")
        with self.assertRaises(NotFoundError):
            val.validate_bag(target)
        self.assertFalse(os.path.exists(target))

    def test_no_manifest(self):
        bag = BagDirectory(os.path.join(self.tempdir, "empty"))
        report = bag.verify()
        self.assertFalse(report.is_valid())
        self.assertEqual(report.failures(), ["No payload manifest found"])

    def test_bagit_reads_ours(self):
        bag = bagit.Bag(self.bagdir)
        self.assertEqual(bag.info['Source-Organization'], "NIST")
        self.assertEqual(bag.info['Payload-Oxum'], "23.3")
        self.assertTrue(bag.is_valid())
        bag.validate()

    def test_we_read_bagits(self):
        srcdir = os.path.join(self.tempdir, "made")
        os.makedirs(os.path.join(srcdir, "sub"))
        with open(os.path.join(srcdir, "sub", "x.txt"), 'w') as fd:
            fd.write("made by bagit")
        bagit.make_bag(srcdir, {"Contact-Name": "Gurn Cranston"},
                       checksums=["sha256", "sha512"])

        bag = BagDirectory(srcdir)
        self.assertEqual(bag.relative_paths(), ["sub/x.txt"])
        self.assertEqual(bag.info['Contact-Name'], "Gurn Cranston")
        self.assertEqual(bag.manifests.algorithms("payload"),
                         ["sha512", "sha256"])
        report = bag.verify()
        self.assertTrue(report.ok(), report.failures())


if __name__ == '__main__':
    test.main()
