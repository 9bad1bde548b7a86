import os

# Save a string to a file
def write_to_file(filename, contents):
	with open(filename, "w") as f:
		f.write(contents)

# Module name for an output file: basename without its extension
def module_name(filename):
	name = os.path.splitext(os.path.basename(filename))[0]
	return name.replace("-", "_").replace(".", "_")

# Write some nice art
def print_header():
	print("    ____ ___  ____  ____  ___ ____                ")
	print("   / ___/ _ \\|  _ \\|  _ \\|_ _/ ___|__ _  ___ _ __ ")
	print("  | |  | | | | |_) | | | || | |   / _` |/ _ \\ '_ \\")
	print("  | |__| |_| |  _ <| |_| || | |__| (_| |  __/ | | |")
	print("   \\____\\___/|_| \\_\\____/|___\\____\\__, |\\___|_| |_|")
	print("                                  |___/            ")
	print("       CORDIC and sine table gateware generator")
	print("")
	print(" ========================================")
	print("")
