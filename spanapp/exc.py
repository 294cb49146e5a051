from collections.abc import Mapping


class DoesNotExist(Exception):  # noqa: N818
    """Exception raised when a resource does not exist."""

    def __init__(self, resource_type: str, resource_id: int | str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f'{resource_type} with ID "{resource_id!s}" does not exist')


class AlreadyExists(Exception):  # noqa: N818
    """Exception raised when a resource already exists."""

    def __init__(self, resource_type: str, resource_id: int | str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f'{resource_type} with ID "{resource_id!s}" already exists')


class LoadFailed(Exception):  # noqa: N818
    """Exception raised when a document, project or document list cannot be loaded."""

    def __init__(self, resource_type: str, resource_id: int | str, error: Exception):
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.error = error
        super().__init__(
            f'Loading {resource_type} with ID "{resource_id!s}" failed: {error!s}'
        )


class SaveFailed(Exception):  # noqa: N818
    """Exception raised when the annotations of one document cannot be saved."""

    def __init__(self, doc_id: int, error: Exception):
        self.doc_id = doc_id
        self.error = error
        super().__init__(f'Saving document with ID "{doc_id!s}" failed: {error!s}')


class SaveAllFailed(Exception):  # noqa: N818
    """
    Exception raised when one or more documents of a batched save fail.

    Documents that were saved successfully are not listed here; they have
    already left the change buffer.
    """

    def __init__(self, failures: Mapping[int, Exception]):
        self.failures = dict(failures)
        ids = ", ".join(str(doc_id) for doc_id in sorted(self.failures))
        super().__init__(f"Saving failed for {len(self.failures)} document(s): {ids}")


class StatusUpdateFailed(Exception):  # noqa: N818
    """Exception raised when the completion status of a document cannot be saved."""

    def __init__(self, doc_id: int, error: Exception):
        self.doc_id = doc_id
        self.error = error
        super().__init__(
            f'Updating status of document with ID "{doc_id!s}" failed: {error!s}'
        )
