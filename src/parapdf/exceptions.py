# parapdf/exceptions.py
class ParaPDFError(Exception):
    """Base exception for the parapdf library."""
    pass

class UsageError(ParaPDFError):
    """Raised when run inputs are malformed, before any work starts."""
    pass

class ImageError(ParaPDFError):
    """Raised when the input image cannot be decoded."""
    pass

class PartitionError(ParaPDFError):
    """Raised when the page count cannot be split under the chosen policy."""
    pass

class EmbedError(ParaPDFError):
    """Raised inside a worker when the image cannot be placed on a page."""
    pass

class PartialWriteError(ParaPDFError):
    """Raised inside a worker when its partial document cannot be saved."""
    pass

class MergeError(ParaPDFError):
    """Raised when the partial documents cannot be merged into the final one."""
    pass

class WorkerFailedError(ParaPDFError):
    """Raised in strict mode when one or more workers reported a failure."""
    def __init__(self, failures):
        self.failures = list(failures)
        ids = ", ".join(str(r.worker_id) for r in self.failures)
        super().__init__(f"{len(self.failures)} worker(s) failed, ids: {ids}")
