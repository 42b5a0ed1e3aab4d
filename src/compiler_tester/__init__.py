"""compiler-tester: integration tests and benchmark comparison for compiler toolchains."""

__version__ = "0.1.0"
