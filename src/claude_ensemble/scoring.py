"""Quality scoring for the infinite-loop refinement mode."""

from typing import Protocol


class QualityScorer(Protocol):
	"""Scores one iteration's output in [0, 1]."""

	def score(self, iteration: int, output: str) -> float:
		...


class PlaceholderScorer:
	"""
	Deterministic stand-in that ignores the output entirely.

	Quality grows linearly with the iteration number, so with the default
	threshold of 0.9 the loop converges on iteration 2. The result is
	rounded so float drift (0.7 + 0.2 == 0.8999...) cannot add an
	extra iteration.
	"""

	def __init__(self, base: float = 0.7, step: float = 0.1):
		self.base = base
		self.step = step

	def score(self, iteration: int, output: str) -> float:
		return round(self.base + self.step * iteration, 6)
