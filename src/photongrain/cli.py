import argparse
import sys
import warnings
from pathlib import Path
from typing import List, Optional

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from photongrain.grain_table import ALL_TIMESTAMPS_END, FilmGrainTable, GrainTableError
from photongrain.noise_model import PhotonNoiseParams, full_scale_electrons, generate_photon_noise
from photongrain.tools.image_tools import read_image_size
from photongrain.tools.print_tools import console, error_console, help_console
from photongrain.transfer_functions import DEFAULT_TRANSFER_FUNCTION, TRANSFER_FUNCTION_ALIASES, UnknownTransferFunctionError, find_transfer_function

"""
PhotonGrain CLI - Film grain table generation from a light level
"""

def render_help():
	"""Render custom help output using Rich"""
	help_console.print()
	help_console.print(Panel.fit(
		"[bold cyan]PhotonGrain[/bold cyan]\n"
		"Film grain tables modelling camera photon noise at a given ISO",
		border_style="cyan"
	))
	help_console.print()

	usage = Table.grid(padding=(0, 2))
	usage.add_column(style="dim")
	usage.add_row("photongrain --width 3840 --height 2160 --iso 25600 -o noise.tbl")
	usage.add_row("photongrain --reference-image photo.jpg --iso 3200 -o noise.tbl")

	help_console.print(Panel(usage, title="[bold]Quick Start[/bold]", border_style="green"))
	help_console.print()

	options = Table.grid(padding=(0, 1))
	options.add_column(style="cyan", width=28)
	options.add_column(style="dim", width=8)
	options.add_column(style="white")

	options.add_row("-w, --width", "int", "Width of the image in pixels (required)")
	options.add_row("-l, --height", "int", "Height of the image in pixels (required)")
	options.add_row("-i, --iso", "int", "ISO setting indicative of the light level (required)")
	options.add_row("-o, --output", "path", "Film grain table to write (required)")
	options.add_row("-t, --transfer-function", "name", "Transfer function of the encoded image")
	options.add_row("", "", f"[dim]Default: {DEFAULT_TRANSFER_FUNCTION.name}[/dim]")
	options.add_row("-r, --reference-image", "path", "Take width and height from an image")
	options.add_row("--overwrite", "", "Replace an existing output without asking")
	options.add_row("-q, --quiet", "", "Only report errors")

	help_console.print(Panel(options, title="[bold]Options[/bold]", border_style="blue"))
	help_console.print()

	tf_table = Table(show_header=True, header_style="bold cyan", border_style="dim")
	tf_table.add_column("Name", style="cyan")
	tf_table.add_column("Alias")
	tf_table.add_column("Curve")
	tf_table.add_row("bt470m", "gamma22", "Gamma 2.2")
	tf_table.add_row("bt470bg", "gamma28", "Gamma 2.8")
	tf_table.add_row("srgb", "", "sRGB [dim](default)[/dim]")
	tf_table.add_row("smpte2084", "pq", "SMPTE ST 2084 (PQ)")
	tf_table.add_row("hlg", "", "Hybrid log-gamma, 1000 cd/m² display")

	help_console.print(Panel(tf_table, title="[bold]Transfer Functions[/bold]", border_style="magenta"))
	help_console.print()

	notes = Table.grid(padding=(0, 0))
	notes.add_column(style="white")
	notes.add_row("The ISO value is the 35mm-equivalent one: the image is assumed to cover a 36×24mm sensor.")
	notes.add_row("For a smaller sensor, multiply the true ISO by the ratio of 36×24mm to its area.")
	notes.add_row("")
	notes.add_row("[dim]# Then, for example:[/dim]")
	notes.add_row("[green]aomenc[/green] --film-grain-table=noise.tbl ...")
	notes.add_row("[green]avifenc[/green] -c aom -a film-grain-table=noise.tbl ...")

	help_console.print(Panel(notes, title="[bold]Notes[/bold]", border_style="yellow"))
	help_console.print()

def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
	parser = argparse.ArgumentParser(
		prog='photongrain',
		description='Generate a film grain table representing photon noise at a given light level',
		add_help=False  # Disable default help to use our custom one
	)

	parser.add_argument('-w', '--width', type=int, help='Width of the image in pixels (required)')
	parser.add_argument('-l', '--height', type=int, help='Height of the image in pixels (required)')
	parser.add_argument('-i', '--iso', type=int, help='ISO setting indicative of the light level (required)')
	parser.add_argument('-o', '--output', type=str, help='Output file to which to write the film grain table (required)')
	parser.add_argument('-t', '--transfer-function', type=str.lower, choices=list(TRANSFER_FUNCTION_ALIASES), default=DEFAULT_TRANSFER_FUNCTION.name, help=f'Transfer function used by the encoded image (default: {DEFAULT_TRANSFER_FUNCTION.name})')
	parser.add_argument('-r', '--reference-image', type=str, help='Image to take width and height from')
	parser.add_argument('--overwrite', action='store_true', help='Overwrite the output file without asking')
	parser.add_argument('-q', '--quiet', action='store_true', help='Only report errors')

	return parser.parse_args(argv)

def render_summary(params: PhotonNoiseParams, grain, output_path: Path):
	config_table = Table.grid(padding=(0, 2))
	config_table.add_column(style="cyan", justify="right")
	config_table.add_column(style="white")

	megapixels = (params.width * params.height) / 1_000_000
	config_table.add_row("Size:", f"{params.width}x{params.height} ({megapixels:.1f} MP)")
	config_table.add_row("ISO:", f"{params.iso_setting}")
	config_table.add_row("Transfer function:", params.transfer_function.name)
	config_table.add_row("Full-scale electrons:", f"{float(full_scale_electrons(params)):.1f}")
	config_table.add_row("Output:", f"[bright_yellow]{escape(str(output_path))}[/bright_yellow]")

	points_table = Table(show_header=True, header_style="bold cyan", border_style="dim")
	points_table.add_column("Value", justify="right")
	points_table.add_column("Noise", justify="right")
	for x, amplitude in grain.scaling_points_y:
		points_table.add_row(str(x), str(amplitude))

	console.print()
	console.print(Panel(config_table, title="[bold]Photon Noise Table[/bold]", border_style="blue"))
	console.print(points_table)
	console.print()

def main(argv: Optional[List[str]] = None) -> int:
	"""Main CLI entry point"""
	if argv is None:
		argv = sys.argv[1:]

	# Check for help flag before parsing
	if '--help' in argv or '-h' in argv:
		render_help()
		return 0

	args = parse_arguments(argv)

	width, height = args.width, args.height
	if args.reference_image:
		try:
			image_width, image_height = read_image_size(args.reference_image)
		except OSError as e:
			error_console.print(f"[red]Error reading reference image:[/red] {escape(str(e))}")
			return 1
		# Explicit dimensions win over the reference image
		width = width if width is not None else image_width
		height = height if height is not None else image_height

	required = (('--width', width), ('--height', height), ('--iso', args.iso), ('--output', args.output))
	for flag, value in required:
		if value is None:
			error_console.print(f"[red]Error:[/red] Missing required parameter {flag}")
			return 1

	for flag, value in (('--width', width), ('--height', height), ('--iso', args.iso)):
		if value <= 0:
			error_console.print(f"[red]Error:[/red] {flag} must be positive, got {value}")
			return 1

	try:
		transfer_function = find_transfer_function(args.transfer_function)
	except UnknownTransferFunctionError as e:
		error_console.print(f"[red]Error:[/red] {escape(str(e))}")
		return 1

	output_path = Path(args.output)
	if output_path.exists() and not args.overwrite:
		try:
			response = console.input(f"[yellow]Output file [bright_yellow]{escape(str(output_path))}[/bright_yellow] exists. Overwrite? [y/N][/yellow] ")
		except (EOFError, KeyboardInterrupt):
			error_console.print(f"[red]Error:[/red] Output file {escape(str(output_path))} exists; use --overwrite to replace it")
			return 1
		if response.strip().lower() != 'y':
			console.print("[yellow]Cancelled.[/yellow]")
			return 1

	params = PhotonNoiseParams(
		width=width,
		height=height,
		iso_setting=args.iso,
		transfer_function=transfer_function
	)

	with warnings.catch_warnings(record=True) as caught:
		warnings.simplefilter('always')
		grain = generate_photon_noise(params)
	for warning in caught:
		error_console.print(f"[yellow]Warning:[/yellow] {escape(str(warning.message))}")

	table = FilmGrainTable()
	table.append(0, ALL_TIMESTAMPS_END, grain)
	try:
		table.write(output_path)
	except GrainTableError as e:
		error_console.print(f"[red]Failed to write film grain table:[/red] {escape(e.detail)}")
		return 1

	if not args.quiet:
		render_summary(params, grain, output_path)
		console.print(f"[green]✓ Done![/green] Wrote [bright_yellow]{escape(str(output_path))}[/bright_yellow]")

	return 0

if __name__ == '__main__':
	sys.exit(main())
