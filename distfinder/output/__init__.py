"""Result sinks."""

from distfinder.output.sink import JsonFileSink, ResultSink

__all__ = ["JsonFileSink", "ResultSink"]
