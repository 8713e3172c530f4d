"""
Run the analyzer and the build finder together.

The analyzer and the build finder each get a dedicated thread and share a
ChecksumQueue and a CancellationToken. When either side fails the token is
cancelled, the other side unblocks with AnalysisInterruptedError, and the
original failure is raised to the caller.

Usage:
    result = find_builds(["dist.zip"], config, [pnc_resolver, koji_resolver],
                         sink=JsonFileSink("out"))
    result.builds
"""

from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from distfinder.analysis.analyzer import DistributionAnalyzer
from distfinder.analysis.models import AnalysisResult, AnalyzerListener
from distfinder.analysis.queue import ChecksumQueue
from distfinder.cache.base import LookasideCache
from distfinder.core.concurrency import CancellationToken
from distfinder.core.config import AnalyzerConfig
from distfinder.core.exceptions import AnalysisInterruptedError, describe_error
from distfinder.core.logging import StageTimer, get_logger
from distfinder.output.sink import ResultSink
from distfinder.resolution.finder import BuildFinder
from distfinder.resolution.models import BuildKey, BuildResolver, ChecksumTable

logger = get_logger(__name__)


@dataclass
class FinderResult:
    """Everything a find_builds() run produced."""

    analysis: AnalysisResult
    builds: Dict[BuildKey, Any] = field(default_factory=dict)
    unresolved: ChecksumTable = field(default_factory=dict)


def _first_failure(errors: List[BaseException]) -> BaseException:
    """Prefer the error that caused the cancellation over the interruptions it triggered."""
    for error in errors:
        if not isinstance(error, AnalysisInterruptedError):
            return error
    return errors[0]


def find_builds(
    inputs: Iterable[str],
    config: Optional[AnalyzerConfig] = None,
    resolvers: Sequence[BuildResolver] = (),
    cache: Optional[LookasideCache] = None,
    sink: Optional[ResultSink] = None,
    listener: Optional[AnalyzerListener] = None,
) -> FinderResult:
    """
    Analyze inputs and resolve their checksums to builds.

    Args:
        inputs: Local paths, file: URIs or http(s) URLs
        config: Analyzer settings; defaults when None
        resolvers: Build resolvers, consulted in order
        cache: Optional look-aside cache
        sink: Receives the completed maps on success
        listener: Receives analyzer progress

    Returns:
        FinderResult with the analysis, the builds and the unresolved table

    Raises:
        DistFinderError: Whatever failed first on either side
    """
    inputs = list(inputs)
    config = config or AnalyzerConfig()
    token = CancellationToken()
    queue = ChecksumQueue()

    analyzer = DistributionAnalyzer(inputs, config, cache=cache, queue=queue, listener=listener, token=token)
    finder = BuildFinder(queue, resolvers, token=token)

    timer = StageTimer(", ".join(inputs))
    timer.start_stage("find")

    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="distfinder-run") as executor:
        analysis_future = executor.submit(analyzer.call)
        builds_future = executor.submit(finder.run)
        futures = [analysis_future, builds_future]

        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        failed = [f for f in done if f.exception() is not None]
        if failed:
            token.cancel(describe_error(failed[0].exception()))
        wait(futures)

    errors = [f.exception() for f in futures if f.exception() is not None]
    if errors:
        error = _first_failure(errors)
        timer.finish(success=False, error=describe_error(error))
        raise error

    result = FinderResult(
        analysis=analysis_future.result(),
        builds=builds_future.result(),
        unresolved=finder.unresolved,
    )

    if sink is not None:
        timer.start_stage("write")
        for checksum_type, index in result.analysis.checksums.items():
            sink.checksums_completed(checksum_type, index)
        sink.builds_completed(result.builds)

    timer.finish(
        success=True,
        checksums=result.analysis.checksum_count,
        builds=sum(1 for key in result.builds if not key.is_sentinel),
        file_errors=len(result.analysis.file_errors),
    )
    return result
