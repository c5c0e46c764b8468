"""Report when the jobs currently running on Slurm nodes are expected to end."""

__version__ = "1.0.0"
