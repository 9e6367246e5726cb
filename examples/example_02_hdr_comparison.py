from photongrain import PhotonNoiseParams, find_transfer_function, full_scale_electrons, generate_photon_noise

def compare_transfer_functions():
	"""Same light level, different encodings"""
	print("=" * 60)
	print("Photon noise at ISO 3200, 3840x2160")
	print("=" * 60)
	
	for name in ['bt470m', 'bt470bg', 'srgb', 'smpte2084', 'hlg']:
		tf = find_transfer_function(name)
		params = PhotonNoiseParams(3840, 2160, 3200, tf)
		
		# HDR curves anchor the mid-tone far below peak, so full scale holds many more electrons
		electrons = float(full_scale_electrons(params))
		amplitudes = [amplitude for _, amplitude in generate_photon_noise(params).scaling_points_y]
		
		print(f"\n{name}: {electrons:,.0f} electrons at full scale")
		print(f"  amplitudes: {amplitudes}")

if __name__ == "__main__":
	compare_transfer_functions()
