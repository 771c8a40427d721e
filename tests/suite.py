from unittest import TestLoader, TestSuite

def additional_tests():
    import tests.bagengine.access as access
    import tests.bagengine.validate as validate
    import tests.bagengine as bagengine

    suites = [TestLoader().loadTestsFromModule(m[1])
                     for m in globals().items() if m[0].startswith("test_")]

    suites.extend( [access.additional_tests(), validate.additional_tests(),
                    bagengine.additional_tests()] )
    return TestSuite(suites)
