from .film_grain import FilmGrainParams
from .grain_table import ALL_TIMESTAMPS_END, FilmGrainTable, FilmGrainTableEntry, GrainTableError, GrainTableErrorKind, read_grain_table, write_grain_table
from .noise_model import PhotonNoiseParams, full_scale_electrons, generate_photon_noise, photon_noise_film_grain
from .transfer_functions import TransferCharacteristics, TransferFunction, UnknownTransferFunctionError, find_transfer_function

"""
PhotonGrain - Photon noise film grain tables

Estimates the noise a digital camera would record at a given light level and
writes it as an AV1 film grain table, for use with aomenc or avifenc.
"""

__version__ = "0.1.0"

__all__ = [
    "ALL_TIMESTAMPS_END",
    "FilmGrainParams",
    "FilmGrainTable",
    "FilmGrainTableEntry",
    "GrainTableError",
    "GrainTableErrorKind",
    "PhotonNoiseParams",
    "TransferCharacteristics",
    "TransferFunction",
    "UnknownTransferFunctionError",
    "find_transfer_function",
    "full_scale_electrons",
    "generate_photon_noise",
    "photon_noise_film_grain",
    "read_grain_table",
    "write_grain_table",
]
