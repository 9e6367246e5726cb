import warnings
from dataclasses import dataclass
from typing import Union

import numpy

from photongrain.film_grain import MAX_Y_POINTS, FilmGrainParams
from photongrain.transfer_functions import DEFAULT_TRANSFER_FUNCTION, TransferCharacteristics, TransferFunction, find_transfer_function

"""
Photon noise model

Estimates the noise one would get by shooting with a digital camera at a given
light level, and expresses it as an AV1 film grain luma scaling function. Much
of the noise in digital images is photon shot noise, which grows in standard
deviation as the square root of the expected number of photons captured.
https://www.photonstophotos.net/Emil%20Martinec/noise.html#shotnoise

The light level is given as the ISO setting that a 35mm camera (36×24mm sensor)
would have used to map the focal plane exposure to the output lightness seen
in the image. For other sensor sizes, multiply the true ISO by the ratio of
36×24mm to the area actually used (e.g. ISO 1000 on APS-C ≈ ISO 2250 here).
https://doi.org/10.1117/1.OE.57.11.110801

Noise is measured relative to the image rather than its pixels: the light on
the sensor is shared between width × height pixels, so a higher resolution
gives more noise per pixel but about the same noise over a given image area.
https://www.photonstophotos.net/Emil%20Martinec/noise-p3.html#pixelsize
"""

# Assumes a daylight-like spectrum.
# https://www.strollswithmydog.com/effective-quantum-efficiency-of-sensor/#:~:text=11%2C260%20photons/um%5E2/lx-s
PHOTONS_PER_LX_S_PER_UM2 = numpy.float32(11260)

# Order of magnitude for cameras in the 2010-2020 decade, taking the CFA into
# account.
EFFECTIVE_QUANTUM_EFFICIENCY = numpy.float32(0.20)

# Also reasonable for current cameras. Read noise is typically higher than this
# at low ISO settings but it matters less there.
PHOTO_RESPONSE_NON_UNIFORMITY = numpy.float32(0.005)
INPUT_REFERRED_READ_NOISE = numpy.float32(1.5)

# 36mm × 24mm, in µm²
SENSOR_AREA_UM2 = numpy.float32(36000 * 24000)

# Focal plane exposure of a mid-tone is MID_TONE_EXPOSURE_LX_S_ISO / iso
MID_TONE_EXPOSURE_LX_S_ISO = numpy.float32(10)

NUM_Y_POINTS = MAX_Y_POINTS

# Maps the noise standard deviation (as a fraction of full range) to film grain
# scaling function units.
AMPLITUDE_SCALE = numpy.float32(7.88)

@dataclass(frozen=True)
class PhotonNoiseParams:
	"""
	Inputs of the photon noise model.

	Parameters
	----------
	width, height : int
		Image size in pixels. The image is assumed to cover a full 36×24mm sensor.

	iso_setting : float
		35mm-equivalent ISO setting indicative of the light level

	transfer_function : TransferFunction, default=sRGB
		Curve used to encode the image the grain will be applied to
	"""
	width: int
	height: int
	iso_setting: float
	transfer_function: TransferFunction = DEFAULT_TRANSFER_FUNCTION

@dataclass(frozen=True)
class NoiseCurve:
	"""Unquantized noise estimate at each sample point of the encoded range"""
	x: numpy.ndarray
	linear: numpy.ndarray
	electrons: numpy.ndarray
	noise_in_electrons: numpy.ndarray
	linear_noise: numpy.ndarray
	encoded_noise: numpy.ndarray
	full_scale_electrons: numpy.float32

def full_scale_electrons(params: PhotonNoiseParams) -> numpy.float32:
	"""
	Expected electrons per pixel at linear light 1.0.

	Anchored at the transfer function's mid-tone, so HDR curves get a much larger
	electron budget than SDR ones at the same ISO.
	"""
	with numpy.errstate(all='ignore'):
		# lx·s, for a mid-tone (typically an 18% reflectance card)
		mid_tone_exposure = MID_TONE_EXPOSURE_LX_S_ISO / numpy.float32(params.iso_setting)
		pixel_area_um2 = SENSOR_AREA_UM2 / numpy.float32(params.width * params.height)
		mid_tone_electrons_per_pixel = (
			EFFECTIVE_QUANTUM_EFFICIENCY * PHOTONS_PER_LX_S_PER_UM2 * mid_tone_exposure * pixel_area_um2
		)
		return mid_tone_electrons_per_pixel / numpy.float32(params.transfer_function.mid_tone)

def compute_noise_curve(params: PhotonNoiseParams) -> NoiseCurve:
	"""
	Estimate noise at NUM_Y_POINTS evenly spaced encoded values.

	The noise is computed in linear light and projected into the encoded domain
	with the slope of the transfer function over ±2 standard deviations around
	each sample.
	"""
	tf = params.transfer_function
	max_electrons_per_pixel = full_scale_electrons(params)

	with numpy.errstate(all='ignore'):
		x = numpy.arange(NUM_Y_POINTS, dtype=numpy.float32) / numpy.float32(NUM_Y_POINTS - 1)
		linear = numpy.asarray(tf.to_linear(x), dtype=numpy.float32)
		electrons = max_electrons_per_pixel * linear

		# Quadrature sum of the noise sources, in electrons rms. Photon shot noise
		# is sqrt(electrons), so it goes in as electrons without the square root.
		# https://en.wikipedia.org/wiki/Addition_in_quadrature
		# https://doi.org/10.1117/3.725073
		noise_in_electrons = numpy.sqrt(
			INPUT_REFERRED_READ_NOISE * INPUT_REFERRED_READ_NOISE
			+ electrons
			+ PHOTO_RESPONSE_NON_UNIFORMITY * PHOTO_RESPONSE_NON_UNIFORMITY * electrons * electrons
		)
		linear_noise = noise_in_electrons / max_electrons_per_pixel

		linear_range_start = numpy.maximum(numpy.float32(0), linear - 2 * linear_noise)
		linear_range_end = numpy.minimum(numpy.float32(1), linear + 2 * linear_noise)
		tf_slope = (
			numpy.asarray(tf.from_linear(linear_range_end), dtype=numpy.float32)
			- numpy.asarray(tf.from_linear(linear_range_start), dtype=numpy.float32)
		) / (linear_range_end - linear_range_start)
		encoded_noise = linear_noise * tf_slope

	return NoiseCurve(
		x=x,
		linear=linear,
		electrons=electrons,
		noise_in_electrons=noise_in_electrons,
		linear_noise=linear_noise,
		encoded_noise=encoded_noise,
		full_scale_electrons=max_electrons_per_pixel
	)

def _round_half_away(values: numpy.ndarray) -> numpy.ndarray:
	return numpy.sign(values) * numpy.floor(numpy.abs(values) + numpy.float32(0.5))

def quantize_noise_curve(curve: NoiseCurve):
	"""Return (x, amplitude) scaling points in [0, 255]"""
	with numpy.errstate(all='ignore'):
		x = _round_half_away(numpy.float32(255) * curve.x)
		amplitude = _round_half_away(numpy.float32(255) * AMPLITUDE_SCALE * curve.encoded_noise)

		n_saturated = int(numpy.count_nonzero(amplitude > 255))
		if n_saturated:
			warnings.warn(f"Noise amplitude clipped to 255 at {n_saturated}/{len(amplitude)} scaling points", RuntimeWarning)

		# NaN from degenerate input would otherwise cast to INT64_MIN
		amplitude = numpy.clip(numpy.nan_to_num(amplitude, nan=0.0), 0, 255)
		return tuple(zip(x.astype(numpy.int64).tolist(), amplitude.astype(numpy.int64).tolist()))

def generate_photon_noise(params: PhotonNoiseParams) -> FilmGrainParams:
	"""
	Build the film grain descriptor for the given image and light level.

	Inputs are not validated: zero dimensions or ISO give degenerate amplitudes
	rather than an exception.

	Examples
	--------
	>>> tf = find_transfer_function('srgb')
	>>> grain = generate_photon_noise(PhotonNoiseParams(3840, 2160, 25600, tf))
	>>> grain.num_y_points
	14
	"""
	scaling_points_y = quantize_noise_curve(compute_noise_curve(params))
	return FilmGrainParams(scaling_points_y=scaling_points_y)

def photon_noise_film_grain(
	width: int,
	height: int,
	iso_setting: float,
	transfer_function: Union[TransferFunction, TransferCharacteristics, int, str] = DEFAULT_TRANSFER_FUNCTION
) -> FilmGrainParams:
	"""
	Quick function to build a descriptor without constructing PhotonNoiseParams.

	transfer_function may be a TransferFunction or anything find_transfer_function
	accepts.
	"""
	if not isinstance(transfer_function, TransferFunction):
		transfer_function = find_transfer_function(transfer_function)
	return generate_photon_noise(PhotonNoiseParams(width, height, iso_setting, transfer_function))

if __name__ == '__main__':
	print('__main__ not supported in modules.')
