from pathlib import Path

from photongrain import ALL_TIMESTAMPS_END, FilmGrainTable, PhotonNoiseParams, find_transfer_function, generate_photon_noise

def write_sdr_table():
	"""Photon noise for a 4K sRGB image shot at ISO 25600"""
	output_path = Path(__file__).parent / f"{Path(__file__).stem}.tbl"
	
	params = PhotonNoiseParams(
		width=3840,
		height=2160,
		iso_setting=25600,
		transfer_function=find_transfer_function('srgb')
	)
	
	print("Estimating photon noise...")
	grain = generate_photon_noise(params)
	for x, amplitude in grain.scaling_points_y:
		print(f"  {x:3d} -> {amplitude}")
	
	table = FilmGrainTable()
	table.append(0, ALL_TIMESTAMPS_END, grain)
	
	print(f"Saving to {output_path.name}...")
	table.write(output_path)
	print("Done! Use with: aomenc --film-grain-table=" + output_path.name)

if __name__ == "__main__":
	write_sdr_table()
