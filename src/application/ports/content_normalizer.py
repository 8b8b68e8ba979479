from typing import AsyncIterator, Protocol, runtime_checkable


@runtime_checkable
class ContentNormalizerPort(Protocol):
    def strip(self, chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        """
        Strip variable metadata (timestamps, camera tags, comments) from content.

        Implementations consume the input stream and yield the normalized bytes
        as they are produced; nothing is buffered in full.

        Args:
            chunks: Raw content as an async iterator of byte chunks

        Returns:
            Async iterator of normalized byte chunks

        Raises:
            ExtractionError: If the normalizer cannot be started, its stream
                fails, or it reports failure
        """
        ...
