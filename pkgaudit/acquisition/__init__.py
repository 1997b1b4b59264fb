"""Advisory database retrieval and installed package enumeration."""
