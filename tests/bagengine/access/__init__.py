from unittest import TestLoader, TestSuite

def additional_tests():
    from . import (test_paths, test_checksum, test_oxum, test_manifest,
                   test_fetch, test_info, test_bag)

    suites = [TestLoader().loadTestsFromModule(m[1])
                     for m in globals().items() if m[0].startswith("test_")]
    return TestSuite(suites)
