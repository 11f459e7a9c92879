class PageflowException(Exception):
    """Base class for errors raised by pageflow services."""
    def __init__(self, message="Pageflow error."):
        self.message = message
        super().__init__(self.message)

class LayoutInvariantError(PageflowException):
    """Raised in strict mode when the layout engine receives a graph whose edges reference unknown nodes."""
    def __init__(self, message="Graph handed to the layout engine is not referentially valid."):
        super().__init__(message)

class TestCaseNotFoundException(PageflowException):
    """Raised when a test case is not found for a given ID."""
    __test__ = False

    def __init__(self, message="Test case not found."):
        super().__init__(message)
