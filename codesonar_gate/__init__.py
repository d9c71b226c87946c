"""CodeSonar analysis gate -- fold hub analysis results into a CI build result."""

__version__ = "0.1.0"
