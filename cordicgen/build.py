#!/usr/bin/env python3

import sys, logging, argparse

from cordicgen.angles import stage_angles, format_angle_table
from cordicgen.config import (GenerationRequest, DEFAULT_EXTRA_BITS, ROTATION_KINDS,
	TABLE_KINDS, extra_bits_for)
from cordicgen.errors import ConfigurationError, ConvergenceError
from cordicgen.toplevel import build_core
from cordicgen.tools import print_header

def parse_args(argv=None):
	parser = argparse.ArgumentParser(description="Generate CORDIC engines and sine tables as Verilog.")
	parser.add_argument("-a", "--aux", action="store_true",
		help="carry an auxiliary bit through the core, aligned with its sample")
	parser.add_argument("-A", "--async-reset", action="store_true",
		help="use an asynchronous, active low reset (implies -r)")
	parser.add_argument("-c", "--header", action="store_true",
		help="write a C header describing the core next to the module")
	parser.add_argument("-f", "--file", default=None,
		help="output file name, - for standard output")
	parser.add_argument("-i", "--input-width", type=int, default=None,
		help="input bits, or phase bits for the plain tables")
	parser.add_argument("-n", "--stages", type=int, default=None,
		help="number of CORDIC stages")
	parser.add_argument("-o", "--output-width", type=int, default=None,
		help="output bits")
	parser.add_argument("-p", "--phase-bits", type=int, default=None,
		help="phase bits")
	parser.add_argument("-R", "--no-reset", dest="reset", action="store_false",
		help="build without a reset")
	parser.add_argument("-r", "--reset", dest="reset", action="store_true",
		help="build with a synchronous reset (default)")
	parser.add_argument("-t", "--type", default="p2r",
		choices=sorted(list(ROTATION_KINDS) + list(TABLE_KINDS)),
		help="kind of core to build")
	parser.add_argument("-v", "--verbose", action="store_true")
	parser.add_argument("-x", "--extra-bits", type=int, default=DEFAULT_EXTRA_BITS,
		help="extra working bits beyond the input and output widths")
	parser.add_argument("--linear", action="store_true",
		help="linear interpolation only, for the spline table")
	parser.set_defaults(reset=True)
	return parser.parse_args(argv)

def request_from_args(args):
	if args.async_reset:
		reset_policy = "async"
	elif args.reset:
		reset_policy = "sync"
	else:
		reset_policy = "none"
	return GenerationRequest(args.type,
		input_width=args.input_width,
		output_width=args.output_width,
		extra_bits=extra_bits_for(args.type, args.extra_bits),
		phase_bits=args.phase_bits,
		stage_count=args.stages,
		reset_policy=reset_policy,
		aux=args.aux,
		linear_only=args.linear,
		filename=args.file,
		header=args.header)

def print_summary(core):
	for key, value in sorted(core.record.items()):
		print("{:>24}: {}".format(key.upper(), value))
	if core.request.is_rotation():
		print("")
		print(format_angle_table(stage_angles(core.config.stage_count, core.config.phase_bits),
			core.config.phase_bits))
	print("")

def main(argv=None):
	args = parse_args(argv)
	logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
		format="%(levelname)s:%(name)s: %(message)s")
	# keep stdout clean for the module itself
	if args.file != "-":
		print_header()

	try:
		core = build_core(request_from_args(args))
		if args.verbose and args.file != "-":
			print_summary(core)
		core.build()
	except (ConfigurationError, ConvergenceError) as e:
		print("ERR: " + str(e), file=sys.stderr)
		return 1
	except OSError as e:
		print("ERR: Cannot write output: " + str(e), file=sys.stderr)
		return 1
	return 0

if __name__ == "__main__":
	sys.exit(main())
