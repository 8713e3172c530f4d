"""
Archive Walker / Distribution Analyzer.

Resolves inputs into a virtual file tree, walks nested archives, and hashes
every eligible file on a bounded worker pool. Primary checksums are handed
to the build finder through a ChecksumQueue.
"""

from distfinder.analysis.analyzer import DistributionAnalyzer
from distfinder.analysis.kinds import FileKind, classify
from distfinder.analysis.models import AnalysisResult, AnalyzerListener
from distfinder.analysis.queue import ChecksumQueue
from distfinder.analysis.vfs import FileNode, FileSystemManager, FolderNode

__all__ = [
    "AnalysisResult",
    "AnalyzerListener",
    "ChecksumQueue",
    "DistributionAnalyzer",
    "FileKind",
    "FileNode",
    "FileSystemManager",
    "FolderNode",
    "classify",
]
