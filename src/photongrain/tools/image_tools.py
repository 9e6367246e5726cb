from pathlib import Path
from typing import Tuple, Union

from PIL import Image

"""
Reference image helpers
"""

def read_image_size(image_path: Union[Path, str]) -> Tuple[int, int]:
	"""
	Get the (width, height) of an image without decoding its pixels.

	Args:
		image_path: Path to any image format Pillow can identify

	Returns:
		(width, height) in pixels

	Raises:
		OSError: If the file is missing or not a recognized image
	"""
	with Image.open(image_path) as image:
		return image.size

if __name__ == '__main__':
	print('__main__ not supported in modules.')
