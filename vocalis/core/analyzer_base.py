"""
Analyzer base interface for the Vocalis analysis engine.

Defines the contract shared by the pitch and spectrogram passes.
"""

import logging
import time
from abc import abstractmethod
from typing import Generic, Optional, Protocol, TypeVar, runtime_checkable

from vocalis.core.models import SampleBuffer
from vocalis.core.progress import CancellationToken, ProgressCallback
from vocalis.utils.errors import (
    AnalysisError,
    BufferAllocationError,
    VocalAnalysisError,
)

# Type variable for result types
T = TypeVar('T')


@runtime_checkable
class Analyzer(Protocol[T]):
    """
    Structural protocol for analysis passes.

    A pass consumes a whole SampleBuffer and returns a typed series. It may
    report progress in [0, 1] and must honor the cancellation token at
    window boundaries.
    """

    @property
    def name(self) -> str:
        ...

    @property
    def version(self) -> str:
        ...

    def analyze(
        self,
        buffer: SampleBuffer,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> T:
        ...


class BaseAnalyzer(Generic[T]):
    """
    Base class providing timing, logging and error translation.

    Uses Template Method pattern - analyze() provides the template,
    subclasses implement _analyze_impl().
    """

    def __init__(self, name: str, version: str):
        self._name = name
        self._version = version
        self.logger = logging.getLogger(f"analyzer.{name}")

    @property
    def name(self) -> str:
        return self._name

    @property
    def version(self) -> str:
        return self._version

    def analyze(
        self,
        buffer: SampleBuffer,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> T:
        """
        Run the pass with timing and error handling.

        Raises:
            AnalysisError: If the pass fails structurally (allocation,
                transform setup, cancellation). "Nothing detected" is never
                an error.
        """
        start_time = time.perf_counter()

        try:
            self.logger.debug(
                f"Starting {self.name}: {len(buffer)} samples @ {buffer.sample_rate} Hz"
            )

            result = self._analyze_impl(buffer, progress, cancel_token)

            elapsed = time.perf_counter() - start_time
            self.logger.info(f"{self.name} complete in {elapsed:.3f}s")

            return result

        except VocalAnalysisError:
            raise

        except MemoryError as e:
            self.logger.error(f"{self.name} could not allocate working buffers")
            raise BufferAllocationError(
                f"{self.name} could not allocate working buffers"
            ) from e

        except Exception as e:
            self.logger.error(f"{self.name} failed: {e}")
            raise AnalysisError(
                f"{self.name} analysis failed: {e}",
                analyzer_name=self.name,
                original_error=e
            ) from e

    @abstractmethod
    def _analyze_impl(
        self,
        buffer: SampleBuffer,
        progress: Optional[ProgressCallback],
        cancel_token: Optional[CancellationToken],
    ) -> T:
        raise NotImplementedError


def hop_samples(sample_rate: int, hop_interval: float) -> int:
    """Number of samples between window starts for a hop given in seconds."""
    return int(sample_rate * hop_interval)
