from rich.console import Console

"""
Shared rich consoles for the command line tools
"""

console = Console()
error_console = Console(stderr=True)
help_console = Console(highlight=False)

if __name__ == '__main__':
	print('__main__ not supported in modules.')
