from dataclasses import dataclass
from typing import Tuple

"""
AV1 film grain parameters

The subset of the AV1 film grain synthesis parameter set that a film grain
table carries for each entry.
"""

MAX_Y_POINTS = 14
MAX_CHROMA_POINTS = 10

DEFAULT_RANDOM_SEED = 7391

ScalingPoints = Tuple[Tuple[int, int], ...]

@dataclass(frozen=True)
class FilmGrainParams:
	"""
	One film grain descriptor.

	The defaults describe luma-only grain with no chroma scaling and no
	auto-regressive spatial correlation, grain enabled and parameters updated,
	with a fixed seed. Only the luma scaling function is expected to vary.

	Parameters
	----------
	scaling_points_y : tuple of (x, amplitude)
		Piecewise-linear luma scaling function, at most 14 points, x strictly
		increasing, both coordinates in [0, 255]

	scaling_points_cb, scaling_points_cr : tuple of (x, amplitude)
		Chroma scaling functions, at most 10 points each

	ar_coeff_lag : int
		Auto-regressive lag. The luma filter has 2 * lag * (lag + 1)
		coefficients, the chroma filters one more for the luma contribution.
	"""
	scaling_points_y: ScalingPoints = ()
	scaling_points_cb: ScalingPoints = ()
	scaling_points_cr: ScalingPoints = ()
	scaling_shift: int = 8
	ar_coeff_lag: int = 0
	ar_coeffs_y: Tuple[int, ...] = ()
	ar_coeffs_cb: Tuple[int, ...] = (0,)
	ar_coeffs_cr: Tuple[int, ...] = (0,)
	ar_coeff_shift: int = 6
	grain_scale_shift: int = 0
	cb_mult: int = 0
	cb_luma_mult: int = 0
	cb_offset: int = 0
	cr_mult: int = 0
	cr_luma_mult: int = 0
	cr_offset: int = 0
	overlap_flag: int = 1
	chroma_scaling_from_luma: int = 0
	random_seed: int = DEFAULT_RANDOM_SEED
	apply_grain: int = 1
	update_parameters: int = 1

	@property
	def num_y_points(self) -> int:
		return len(self.scaling_points_y)

	@property
	def num_cb_points(self) -> int:
		return len(self.scaling_points_cb)

	@property
	def num_cr_points(self) -> int:
		return len(self.scaling_points_cr)

	@property
	def num_ar_coeffs_y(self) -> int:
		return 2 * self.ar_coeff_lag * (self.ar_coeff_lag + 1)

if __name__ == '__main__':
	print('__main__ not supported in modules.')
