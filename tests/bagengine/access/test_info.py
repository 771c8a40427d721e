# encoding: utf-8

import os, pdb, logging
import tempfile, shutil
import unittest as test
from collections import OrderedDict
from datetime import date

import fs.osfs
from bagit import BagError

import bagengine.access.info as info
from bagengine.constants import Version, SOFTWARE_AGENT

logging.basicConfig(filename='test.log', level=logging.DEBUG)

# But we do want any exceptions raised in the logging path to be raised:
logging.raiseExceptions = True

class TestFormatTags(test.TestCase):

    def test_format(self):
        tags = OrderedDict([("Source-Organization", "NIST"),
                            ("Contact-Name", ["Gurn Cranston", "Gary Mann"]),
                            ("External-Description", "multi\nline\r\nvalue")])
        self.assertEqual(info.format_tags(tags),
                         "Source-Organization: NIST\n"
                         "Contact-Name: Gurn Cranston\n"
                         "Contact-Name: Gary Mann\n"
                         "External-Description: multilinevalue\n")
        self.assertEqual(info.format_tags({}), "")
        self.assertEqual(info.format_tags({"Payload-Oxum": 3}),
                         "Payload-Oxum: 3\n")

class TestBagInfo(test.TestCase):

    def setUp(self):
        self.tempdir = tempfile.mkdtemp()
        self.bagdir = os.path.join(self.tempdir, "samplebag")
        os.mkdir(self.bagdir)
        self.fs = fs.osfs.OSFS(self.bagdir)
        self.info = info.BagInfo(self.fs)

    def tearDown(self):
        self.fs.close()
        shutil.rmtree(self.tempdir)

    def write_file(self, name, text):
        with open(os.path.join(self.bagdir, name), 'w', encoding='utf-8') as fd:
            fd.write(text)

    def read_file(self, name):
        with open(os.path.join(self.bagdir, name), encoding='utf-8') as fd:
            return fd.read()

    def test_declaration(self):
        self.assertFalse(self.info.has_declaration())
        self.info.write_declaration()
        self.assertTrue(self.info.has_declaration())
        self.assertEqual(self.read_file("bagit.txt"),
                         "BagIt-Version: 1.0\n"
                         "Tag-File-Character-Encoding: UTF-8\n")

        decl = self.info.declaration()
        self.assertEqual(decl['BagIt-Version'], "1.0")
        self.assertEqual(decl['Tag-File-Character-Encoding'], "UTF-8")
        self.assertEqual(self.info.version(), Version("1.0"))
        self.assertTrue(self.info.version() > "0.97")

    def test_bad_declaration(self):
        self.write_file("bagit.txt", "BagIt-Version: 0.97\n")
        with self.assertRaises(BagError):
            self.info.declaration()

    def test_read_missing(self):
        self.assertFalse(self.info.has_info())
        self.assertEqual(self.info.read(), OrderedDict())

    def test_read_tags(self):
        self.write_file("bag-info.txt",
                        "\ufeffSource-Organization: NIST\n"
                        "Contact-Name: Gurn Cranston\n"
                        "Contact-Name: Gary Mann\n"
                        "External-Description: a long description\n")
        tags = self.info.read()
        self.assertEqual(list(tags.keys()),
                         ["Source-Organization", "Contact-Name",
                          "External-Description"])
        self.assertEqual(tags["Source-Organization"], "NIST")
        self.assertEqual(tags["Contact-Name"], ["Gurn Cranston", "Gary Mann"])
        self.assertEqual(tags["External-Description"], "a long description")

    def test_write(self):
        tags = OrderedDict([("Source-Organization", "NIST"),
                            ("Contact-Name", ["Gurn Cranston", "Gary Mann"])])
        self.info.write(tags)
        self.assertEqual(self.info.read(), tags)
        self.assertFalse(os.path.exists(os.path.join(self.bagdir,
                                                     "bag-info.txt.tmp")))

    def test_refresh(self):
        tags = self.info.refresh(15, 2, {"Source-Organization": "NIST"})
        self.assertEqual(tags['Payload-Oxum'], "15.2")
        self.assertEqual(tags['Bag-Size'], "15 B")
        self.assertEqual(tags['Bagging-Date'], date.today().isoformat())
        self.assertEqual(tags['Bag-Software-Agent'], SOFTWARE_AGENT)

        read = self.info.read()
        self.assertEqual(read['Payload-Oxum'], "15.2")
        self.assertEqual(read['Source-Organization'], "NIST")

    def test_refresh_preserves(self):
        self.write_file("bag-info.txt",
                        "Bagging-Date: 2019-01-01\n"
                        "Bag-Software-Agent: someone else\n"
                        "Payload-Oxum: 1.1\n"
                        "Contact-Name: Gurn Cranston\n")
        self.info.refresh(4875, 3)
        read = self.info.read()
        self.assertEqual(read['Bagging-Date'], "2019-01-01")
        self.assertEqual(read['Bag-Software-Agent'], "someone else")
        self.assertEqual(read['Contact-Name'], "Gurn Cranston")
        self.assertEqual(read['Payload-Oxum'], "4875.3")
        self.assertEqual(read['Bag-Size'], "4.875 kB")
        self.assertEqual(list(read.keys())[0], "Bagging-Date")


if __name__ == '__main__':
    test.main()
