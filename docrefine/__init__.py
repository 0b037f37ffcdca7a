"""DocRefine - iterative expert-grade document revision.

Turns a one-shot document analysis into an ordered worklist of revision
steps and executes them against an evolving document:
- Plan generation (analysis + proposed steps)
- Step execution (one revision per step)
- Run control (single step or unattended chain, busy-guarded)
"""

__version__ = "0.1.0"
