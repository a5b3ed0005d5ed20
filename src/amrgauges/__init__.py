"""amrgauges: gauge tracking and buffered output for AMR shallow-water runs."""

__version__ = "0.1.0"
