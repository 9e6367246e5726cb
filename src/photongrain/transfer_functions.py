from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Dict, Union

import numpy

"""
Transfer function catalog

Tone response curves used to encode images. "Linear" is linear output light
normalized so that 1.0 is the peak of the curve (10000 cd/m² for PQ, a nominal
1000 cd/m² display for HLG).
"""

class TransferCharacteristics(IntEnum):
	"""CICP transfer characteristics codes (ITU-T H.273) for the supported curves"""
	BT470M = 4
	BT470BG = 5
	SRGB = 13
	SMPTE2084 = 16
	HLG = 18

class UnknownTransferFunctionError(ValueError):
	"""Raised when a transfer function identifier is not in the catalog"""

def _as_float32(value) -> numpy.ndarray:
	return numpy.asarray(value, dtype=numpy.float32)

def _unwrap(result: numpy.ndarray):
	# 0-d arrays come back as numpy scalars
	return result[()] if result.ndim == 0 else result

def gamma22_to_linear(g):
	return _unwrap(numpy.power(_as_float32(g), numpy.float32(2.2)))

def gamma22_from_linear(l):
	return _unwrap(numpy.power(_as_float32(l), numpy.float32(1 / 2.2)))

def gamma28_to_linear(g):
	return _unwrap(numpy.power(_as_float32(g), numpy.float32(2.8)))

def gamma28_from_linear(l):
	return _unwrap(numpy.power(_as_float32(l), numpy.float32(1 / 2.8)))

def srgb_to_linear(srgb):
	srgb = _as_float32(srgb)
	result = numpy.where(
		srgb <= numpy.float32(0.04045),
		srgb / numpy.float32(12.92),
		numpy.power((srgb + numpy.float32(0.055)) / numpy.float32(1.055), numpy.float32(2.4))
	)
	return _unwrap(result.astype(numpy.float32))

def srgb_from_linear(linear):
	linear = _as_float32(linear)
	result = numpy.where(
		linear <= numpy.float32(0.0031308),
		numpy.float32(12.92) * linear,
		numpy.float32(1.055) * numpy.power(linear, numpy.float32(1 / 2.4)) - numpy.float32(0.055)
	)
	return _unwrap(result.astype(numpy.float32))

PQ_M1 = numpy.float32(2610 / 16384)
PQ_M2 = numpy.float32(128 * 2523 / 4096)
PQ_C1 = numpy.float32(3424 / 4096)
PQ_C2 = numpy.float32(32 * 2413 / 4096)
PQ_C3 = numpy.float32(32 * 2392 / 4096)

def pq_to_linear(pq):
	pq_pow_inv_m2 = numpy.power(_as_float32(pq), numpy.float32(1) / PQ_M2)
	numerator = numpy.maximum(numpy.float32(0), pq_pow_inv_m2 - PQ_C1)
	result = numpy.power(numerator / (PQ_C2 - PQ_C3 * pq_pow_inv_m2), numpy.float32(1) / PQ_M1)
	return _unwrap(result)

def pq_from_linear(linear):
	linear_pow_m1 = numpy.power(_as_float32(linear), PQ_M1)
	result = numpy.power((PQ_C1 + PQ_C2 * linear_pow_m1) / (numpy.float32(1) + PQ_C3 * linear_pow_m1), PQ_M2)
	return _unwrap(result)

# "Linear" for HLG is display light for a nominal 1000 cd/m² peak, hence the
# system gamma of 1.2 (the OOTF). For scene light, drop the OOTF and its inverse
# and use a mid-tone of (26 / 1000) ** (1 / 1.2).
HLG_A = numpy.float32(0.17883277)
HLG_B = numpy.float32(0.28466892)
HLG_C = numpy.float32(0.55991073)
HLG_SYSTEM_GAMMA = numpy.float32(1.2)

def hlg_to_linear(hlg):
	# EOTF = OOTF ∘ OETF⁻¹
	hlg = _as_float32(hlg)
	with numpy.errstate(over='ignore'):
		scene = numpy.where(
			hlg <= numpy.float32(0.5),
			hlg * hlg / numpy.float32(3),
			(numpy.exp((hlg - HLG_C) / HLG_A) + HLG_B) / numpy.float32(12)
		)
	return _unwrap(numpy.power(scene.astype(numpy.float32), HLG_SYSTEM_GAMMA))

def hlg_from_linear(linear):
	# EOTF⁻¹ = OETF ∘ OOTF⁻¹
	scene = numpy.power(_as_float32(linear), numpy.float32(1) / HLG_SYSTEM_GAMMA)
	# The log branch is evaluated everywhere but only kept above 1/12
	with numpy.errstate(invalid='ignore', divide='ignore'):
		result = numpy.where(
			scene <= numpy.float32(1 / 12),
			numpy.sqrt(numpy.float32(3) * scene),
			HLG_A * numpy.log(numpy.float32(12) * scene - HLG_B) + HLG_C
		)
	return _unwrap(result.astype(numpy.float32))

@dataclass(frozen=True)
class TransferFunction:
	"""
	A tone response curve with its reference mid-tone.

	Parameters
	----------
	name : str
		Canonical catalog name (e.g. 'srgb')

	characteristics : TransferCharacteristics
		CICP code of the curve

	to_linear : callable
		Encoded value in [0, 1] -> linear light in [0, 1]

	from_linear : callable
		Linear light in [0, 1] -> encoded value in [0, 1]

	mid_tone : float
		Linear output light treated as a mid-tone. 0.18 for SDR curves, which
		matches Standard Output Sensitivity in ISO 12232:2019. In HDR, 18% of the
		peak is far too bright to be a mid-tone (1800 cd/m² for PQ), so the HDR
		curves use the 26 cd/m² reference level from ITU-R BT.2408.
	"""
	name: str
	characteristics: TransferCharacteristics
	to_linear: Callable = field(repr=False, compare=False)
	from_linear: Callable = field(repr=False, compare=False)
	mid_tone: float

GAMMA22 = TransferFunction('bt470m', TransferCharacteristics.BT470M, gamma22_to_linear, gamma22_from_linear, 0.18)
GAMMA28 = TransferFunction('bt470bg', TransferCharacteristics.BT470BG, gamma28_to_linear, gamma28_from_linear, 0.18)
SRGB = TransferFunction('srgb', TransferCharacteristics.SRGB, srgb_to_linear, srgb_from_linear, 0.18)
# https://www.itu.int/pub/R-REP-BT.2408-4-2021 page 6 (PDF page 8)
PQ = TransferFunction('smpte2084', TransferCharacteristics.SMPTE2084, pq_to_linear, pq_from_linear, 26 / 10000)
HLG = TransferFunction('hlg', TransferCharacteristics.HLG, hlg_to_linear, hlg_from_linear, 26 / 1000)

TRANSFER_FUNCTIONS: Dict[TransferCharacteristics, TransferFunction] = {
	tf.characteristics: tf for tf in (GAMMA22, GAMMA28, SRGB, PQ, HLG)
}

TRANSFER_FUNCTION_ALIASES = {
	'bt470m': TransferCharacteristics.BT470M,
	'gamma22': TransferCharacteristics.BT470M,
	'bt470bg': TransferCharacteristics.BT470BG,
	'gamma28': TransferCharacteristics.BT470BG,
	'srgb': TransferCharacteristics.SRGB,
	'smpte2084': TransferCharacteristics.SMPTE2084,
	'pq': TransferCharacteristics.SMPTE2084,
	'hlg': TransferCharacteristics.HLG,
}

DEFAULT_TRANSFER_FUNCTION = SRGB

def find_transfer_function(identifier: Union[TransferCharacteristics, int, str]) -> TransferFunction:
	"""
	Look up a transfer function by CICP code or by name.

	Names are case-insensitive and may be any of TRANSFER_FUNCTION_ALIASES.
	There is no fallback: using the wrong curve silently corrupts noise
	amplitudes by orders of magnitude in HDR.

	Raises
	------
	UnknownTransferFunctionError
		If the identifier is not in the catalog
	"""
	if isinstance(identifier, str):
		key = identifier.strip().lower()
		if key not in TRANSFER_FUNCTION_ALIASES:
			raise UnknownTransferFunctionError(
				f"Unimplemented transfer function '{identifier}'. "
				f"Must be one of: {', '.join(TRANSFER_FUNCTION_ALIASES)}"
			)
		return TRANSFER_FUNCTIONS[TRANSFER_FUNCTION_ALIASES[key]]

	if isinstance(identifier, bool) or not isinstance(identifier, int):
		raise UnknownTransferFunctionError(f"Unimplemented transfer function {identifier!r}")

	try:
		return TRANSFER_FUNCTIONS[TransferCharacteristics(identifier)]
	except ValueError:
		raise UnknownTransferFunctionError(f"Unimplemented transfer function {identifier}") from None

if __name__ == '__main__':
	print('__main__ not supported in modules.')
