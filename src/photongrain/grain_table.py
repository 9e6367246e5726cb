import dataclasses
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional, Union

from photongrain.film_grain import MAX_CHROMA_POINTS, MAX_Y_POINTS, FilmGrainParams

"""
Film grain tables

Reads and writes the text film grain table format used by libaom
(aomenc --film-grain-table, avifenc -a film-grain-table=...). A table is a list
of entries, each applying one set of film grain parameters to the frames whose
timestamps fall in [start_time, end_time).
"""

FILE_MAGIC = b'filmgrn1'

# End timestamp of an entry that covers every frame
ALL_TIMESTAMPS_END = 2 ** 63 - 1

class GrainTableErrorKind(Enum):
	IO = 'io'
	FORMAT = 'format'

class GrainTableError(Exception):
	"""
	Failure to read or write a film grain table.

	Attributes
	----------
	kind : GrainTableErrorKind
		IO when the file cannot be opened, read or written, FORMAT when its
		contents are not a valid table
	detail : str
		Human-readable description
	"""

	def __init__(self, kind: GrainTableErrorKind, detail: str):
		super().__init__(detail)
		self.kind = kind
		self.detail = detail

@dataclass
class FilmGrainTableEntry:
	start_time: int
	end_time: int
	params: FilmGrainParams

	def covers(self, timestamp: int) -> bool:
		return self.start_time <= timestamp < self.end_time

class FilmGrainTable:
	"""
	Ordered film grain table entries.

	Examples
	--------
	>>> table = FilmGrainTable()
	>>> table.append(0, ALL_TIMESTAMPS_END, params)
	>>> table.write("noise.tbl")
	"""

	def __init__(self, entries: Optional[List[FilmGrainTableEntry]] = None):
		self.entries: List[FilmGrainTableEntry] = list(entries) if entries else []

	def __len__(self) -> int:
		return len(self.entries)

	def __iter__(self) -> Iterator[FilmGrainTableEntry]:
		return iter(self.entries)

	def append(self, start_time: int, end_time: int, params: FilmGrainParams):
		"""Add an entry, or extend the last one if it has the same parameters"""
		if self.entries and self.entries[-1].params == params:
			last = self.entries[-1]
			last.end_time = max(last.end_time, end_time)
			return
		self.entries.append(FilmGrainTableEntry(start_time, end_time, params))

	def lookup(self, timestamp: int) -> Optional[FilmGrainParams]:
		"""Parameters applying to the frame at timestamp, or None"""
		for entry in self.entries:
			if entry.covers(timestamp):
				return entry.params
		return None

	def write(self, path: Union[Path, str]):
		write_grain_table(self, path)

	@classmethod
	def read(cls, path: Union[Path, str]) -> 'FilmGrainTable':
		return read_grain_table(path)

def _check_params(pars: FilmGrainParams):
	"""Reject parameters that would not read back as written"""
	if pars.num_y_points > MAX_Y_POINTS:
		raise GrainTableError(GrainTableErrorKind.FORMAT, f"Number of y points {pars.num_y_points} exceeds max ({MAX_Y_POINTS})")
	for name, count in (('cb', pars.num_cb_points), ('cr', pars.num_cr_points)):
		if count > MAX_CHROMA_POINTS:
			raise GrainTableError(GrainTableErrorKind.FORMAT, f"Number of {name} points {count} exceeds max ({MAX_CHROMA_POINTS})")

	if pars.ar_coeff_lag < 0:
		raise GrainTableError(GrainTableErrorKind.FORMAT, f"Invalid auto-regressive lag {pars.ar_coeff_lag}")
	n_coeffs = pars.num_ar_coeffs_y
	expected = (('y', pars.ar_coeffs_y, n_coeffs), ('cb', pars.ar_coeffs_cb, n_coeffs + 1), ('cr', pars.ar_coeffs_cr, n_coeffs + 1))
	for name, coeffs, count in expected:
		if len(coeffs) != count:
			raise GrainTableError(
				GrainTableErrorKind.FORMAT,
				f"Auto-regressive lag {pars.ar_coeff_lag} needs {count} {name} coeffs, got {len(coeffs)}"
			)

def _format_entry(entry: FilmGrainTableEntry) -> str:
	pars = entry.params
	lines = [f"E {entry.start_time} {entry.end_time} {pars.apply_grain} {pars.random_seed} {pars.update_parameters}\n"]
	if not pars.update_parameters:
		return ''.join(lines)

	_check_params(pars)

	p_values = (
		pars.ar_coeff_lag, pars.ar_coeff_shift, pars.grain_scale_shift,
		pars.scaling_shift, pars.chroma_scaling_from_luma, pars.overlap_flag,
		pars.cb_mult, pars.cb_luma_mult, pars.cb_offset,
		pars.cr_mult, pars.cr_luma_mult, pars.cr_offset
	)
	lines.append("\tp " + ' '.join(str(v) for v in p_values) + "\n")

	# libaom writes "sY <n> " followed by " x y" pairs, hence the double space
	lines.append(f"\tsY {pars.num_y_points} " + ''.join(f" {x} {y}" for x, y in pars.scaling_points_y) + "\n")
	lines.append(f"\tsCb {pars.num_cb_points}" + ''.join(f" {x} {y}" for x, y in pars.scaling_points_cb) + "\n")
	lines.append(f"\tsCr {pars.num_cr_points}" + ''.join(f" {x} {y}" for x, y in pars.scaling_points_cr) + "\n")

	lines.append("\tcY" + ''.join(f" {c}" for c in pars.ar_coeffs_y) + "\n")
	lines.append("\tcCb" + ''.join(f" {c}" for c in pars.ar_coeffs_cb) + "\n")
	lines.append("\tcCr" + ''.join(f" {c}" for c in pars.ar_coeffs_cr) + "\n")
	return ''.join(lines)

def format_grain_table(table: FilmGrainTable) -> bytes:
	body = ''.join(_format_entry(entry) for entry in table)
	return FILE_MAGIC + b"\n" + body.encode('ascii')

def write_grain_table(table: FilmGrainTable, path: Union[Path, str]):
	"""
	Write a film grain table to path, replacing any existing file.

	Raises
	------
	GrainTableError
		With kind IO if the file cannot be written, FORMAT if an entry's
		parameters would not read back as written (too many scaling points,
		coefficient counts not matching the auto-regressive lag)
	"""
	data = format_grain_table(table)
	try:
		with open(path, 'wb') as f:
			f.write(data)
	except OSError as e:
		raise GrainTableError(GrainTableErrorKind.IO, f"Unable to write file {path}: {e.strerror or e}") from e

class _TokenReader:
	"""Whitespace-separated tokens of a table body, consumed front to back"""

	def __init__(self, text: str):
		self._tokens = text.split()
		self._pos = 0

	def at_end(self) -> bool:
		return self._pos >= len(self._tokens)

	def expect(self, keyword: str, context: str):
		token = self._next(context)
		if token != keyword:
			raise GrainTableError(GrainTableErrorKind.FORMAT, f"Unable to read {context}: expected '{keyword}', got '{token}'")

	def read_ints(self, count: int, context: str) -> List[int]:
		values = []
		for _ in range(count):
			token = self._next(context)
			try:
				values.append(int(token))
			except ValueError:
				raise GrainTableError(GrainTableErrorKind.FORMAT, f"Unable to read {context}: '{token}' is not an integer") from None
		return values

	def _next(self, context: str) -> str:
		if self.at_end():
			raise GrainTableError(GrainTableErrorKind.FORMAT, f"Unable to read {context}: unexpected end of file")
		token = self._tokens[self._pos]
		self._pos += 1
		return token

def _read_points(reader: _TokenReader, keyword: str, max_points: int, name: str):
	reader.expect(keyword, f"num {name} points")
	count, = reader.read_ints(1, f"num {name} points")
	if count < 0 or count > max_points:
		raise GrainTableError(GrainTableErrorKind.FORMAT, f"Number of {name} points {count} exceeds max ({max_points})")
	values = reader.read_ints(2 * count, f"{name} scaling points")
	return tuple(zip(values[0::2], values[1::2]))

def _read_entry(reader: _TokenReader, previous: Optional[FilmGrainParams]) -> FilmGrainTableEntry:
	reader.expect('E', "entry header")
	start_time, end_time, apply_grain, random_seed, update_parameters = reader.read_ints(5, "entry header")

	if not update_parameters:
		if previous is None:
			raise GrainTableError(GrainTableErrorKind.FORMAT, "First entry does not update parameters")
		params = dataclasses.replace(
			previous,
			apply_grain=apply_grain,
			random_seed=random_seed,
			update_parameters=update_parameters
		)
		return FilmGrainTableEntry(start_time, end_time, params)

	reader.expect('p', "entry params")
	(ar_coeff_lag, ar_coeff_shift, grain_scale_shift, scaling_shift,
	 chroma_scaling_from_luma, overlap_flag, cb_mult, cb_luma_mult, cb_offset,
	 cr_mult, cr_luma_mult, cr_offset) = reader.read_ints(12, "entry params")
	if ar_coeff_lag < 0:
		raise GrainTableError(GrainTableErrorKind.FORMAT, f"Invalid auto-regressive lag {ar_coeff_lag}")

	scaling_points_y = _read_points(reader, 'sY', MAX_Y_POINTS, 'y')
	scaling_points_cb = _read_points(reader, 'sCb', MAX_CHROMA_POINTS, 'cb')
	scaling_points_cr = _read_points(reader, 'sCr', MAX_CHROMA_POINTS, 'cr')

	n_coeffs = 2 * ar_coeff_lag * (ar_coeff_lag + 1)
	reader.expect('cY', "y coeffs")
	ar_coeffs_y = reader.read_ints(n_coeffs, "y coeffs")
	reader.expect('cCb', "cb coeffs")
	ar_coeffs_cb = reader.read_ints(n_coeffs + 1, "cb coeffs")
	reader.expect('cCr', "cr coeffs")
	ar_coeffs_cr = reader.read_ints(n_coeffs + 1, "cr coeffs")

	params = FilmGrainParams(
		scaling_points_y=scaling_points_y,
		scaling_points_cb=scaling_points_cb,
		scaling_points_cr=scaling_points_cr,
		scaling_shift=scaling_shift,
		ar_coeff_lag=ar_coeff_lag,
		ar_coeffs_y=tuple(ar_coeffs_y),
		ar_coeffs_cb=tuple(ar_coeffs_cb),
		ar_coeffs_cr=tuple(ar_coeffs_cr),
		ar_coeff_shift=ar_coeff_shift,
		grain_scale_shift=grain_scale_shift,
		cb_mult=cb_mult,
		cb_luma_mult=cb_luma_mult,
		cb_offset=cb_offset,
		cr_mult=cr_mult,
		cr_luma_mult=cr_luma_mult,
		cr_offset=cr_offset,
		overlap_flag=overlap_flag,
		chroma_scaling_from_luma=chroma_scaling_from_luma,
		random_seed=random_seed,
		apply_grain=apply_grain,
		update_parameters=update_parameters
	)
	return FilmGrainTableEntry(start_time, end_time, params)

def parse_grain_table(data: bytes) -> FilmGrainTable:
	if data[:len(FILE_MAGIC)] != FILE_MAGIC:
		raise GrainTableError(GrainTableErrorKind.FORMAT, "File has invalid magic")

	try:
		text = data[len(FILE_MAGIC):].decode('ascii')
	except UnicodeDecodeError as e:
		raise GrainTableError(GrainTableErrorKind.FORMAT, f"File is not a text film grain table: {e}") from e

	reader = _TokenReader(text)
	table = FilmGrainTable()
	previous = None
	while not reader.at_end():
		entry = _read_entry(reader, previous)
		table.entries.append(entry)
		previous = entry.params
	return table

def read_grain_table(path: Union[Path, str]) -> FilmGrainTable:
	"""
	Read a film grain table from path.

	Entries that do not update parameters reuse the previous entry's
	parameters with their own random seed.

	Raises
	------
	GrainTableError
		With kind IO if the file cannot be read, FORMAT if it is malformed
	"""
	try:
		with open(path, 'rb') as f:
			data = f.read()
	except OSError as e:
		raise GrainTableError(GrainTableErrorKind.IO, f"Unable to open file {path}: {e.strerror or e}") from e
	return parse_grain_table(data)

if __name__ == '__main__':
	print('__main__ not supported in modules.')
