import logging
from collections import namedtuple

from cordicgen.errors import ConfigurationError
from cordicgen.solver import (check_width, check_phase_bits,
	minimal_phase_bits, minimal_stage_count)

logger = logging.getLogger(__name__)

DEFAULT_BITWIDTH = 24
DEFAULT_EXTRA_BITS = 2
MAX_DIRECT_LGSZ = 24
MAX_QUARTER_LGSZ = 26
MAX_SPLINE_LGSZ = 20

RESET_POLICIES = ("none", "sync", "async")

# kind -> (mode, architecture) for the rotation engines
ROTATION_KINDS = {
	"p2r": ("rotate", "pipelined"),
	"sp2r": ("rotate", "iterative"),
	"r2p": ("vectoring", "pipelined"),
	"sr2p": ("vectoring", "iterative"),
}

# kind -> table style for the sine evaluators
TABLE_KINDS = {
	"tbl": "direct",
	"qtr": "quarter",
	"qtbl": "quadratic",
}

DEFAULT_FILENAMES = {
	"p2r": "basiccordic.v",
	"sp2r": "seqcordic.v",
	"r2p": "topolar.v",
	"sr2p": "seqpolar.v",
	"tbl": "sintable.v",
	"qtr": "quarterwav.v",
	"qtbl": "quadtbl.v",
}

CoreConfiguration = namedtuple("CoreConfiguration",
	"input_width output_width extra_bits working_width phase_bits stage_count"
	" mode architecture reset_policy aux_enabled")

TableConfiguration = namedtuple("TableConfiguration",
	"kind output_width extra_bits phase_bits reset_policy aux_enabled linear_only")

class GenerationRequest:
	def __init__(self, kind, input_width=None, output_width=None, extra_bits=None,
	  phase_bits=None, stage_count=None, reset_policy="sync", aux=False,
	  linear_only=False, filename=None, header=False):
		if kind not in ROTATION_KINDS and kind not in TABLE_KINDS:
			raise ConfigurationError("Unsupported generator type " + repr(kind))
		if reset_policy not in RESET_POLICIES:
			raise ConfigurationError("Unsupported reset policy " + repr(reset_policy))
		self.kind = kind
		self.input_width = input_width
		self.output_width = output_width
		self.extra_bits = extra_bits
		self.phase_bits = phase_bits
		self.stage_count = stage_count
		self.reset_policy = reset_policy
		self.aux = aux
		self.linear_only = linear_only
		if filename is None:
			filename = DEFAULT_FILENAMES[kind]
		self.filename = filename
		self.header = header

	def is_rotation(self):
		return self.kind in ROTATION_KINDS

# Extra bits actually carried for a user supplied count of extra bits.
# The rotation engines and the spline carry one more bit than asked for.
def extra_bits_for(kind, extra_bits):
	if kind in ROTATION_KINDS or kind == "qtbl":
		return extra_bits + 1
	return extra_bits

def _default_widths(input_width, output_width):
	if input_width is None and output_width is not None:
		input_width = output_width
	if output_width is None:
		output_width = input_width
	if input_width is None or output_width is None:
		logger.warning("Assuming an input and output bit-width of %d bits", DEFAULT_BITWIDTH)
		input_width = output_width = DEFAULT_BITWIDTH
	return input_width, output_width

def working_width(mode, input_width, output_width, extra_bits):
	ww = max(input_width, output_width) + extra_bits
	if mode == "vectoring":
		ww += 1
	return ww

def resolve_configuration(request):
	if not request.is_rotation():
		raise ConfigurationError(request.kind + " does not build a rotation engine")
	mode, architecture = ROTATION_KINDS[request.kind]
	iw, ow = _default_widths(request.input_width, request.output_width)
	check_width("input width", iw)
	check_width("output width", ow)
	extra_bits = request.extra_bits
	if extra_bits is None:
		extra_bits = extra_bits_for(request.kind, DEFAULT_EXTRA_BITS)
	if extra_bits < 1:
		raise ConfigurationError("The rotation engines need at least one extra bit, got {}".format(
			extra_bits))

	ww = working_width(mode, iw, ow, extra_bits)
	phase_bits = request.phase_bits
	if phase_bits is None:
		phase_bits = minimal_phase_bits(ww)
	check_phase_bits(phase_bits)
	stage_count = request.stage_count
	if stage_count is None:
		stage_count = minimal_stage_count(ww, phase_bits)
	if stage_count < 1:
		raise ConfigurationError("At least one CORDIC stage is required, got {}".format(stage_count))

	config = CoreConfiguration(
		input_width=iw,
		output_width=ow,
		extra_bits=extra_bits,
		working_width=ww,
		phase_bits=phase_bits,
		stage_count=stage_count,
		mode=mode,
		architecture=architecture,
		reset_policy=request.reset_policy,
		aux_enabled=request.aux)
	logger.info("%s %s CORDIC: IW=%d OW=%d WW=%d PW=%d NSTAGES=%d",
		architecture, mode, iw, ow, ww, phase_bits, stage_count)
	return config

# Widest output whose natural phase resolution is the given phase width
def _infer_output_width(phase_bits):
	for k in range(phase_bits, 0, -1):
		if minimal_phase_bits(k) == phase_bits:
			return k
	return None

def resolve_table_configuration(request):
	if request.kind not in TABLE_KINDS:
		raise ConfigurationError(request.kind + " does not build a sine table")
	kind = TABLE_KINDS[request.kind]
	phase_bits = request.phase_bits
	extra_bits = request.extra_bits
	if extra_bits is None:
		extra_bits = extra_bits_for(request.kind, DEFAULT_EXTRA_BITS)

	if kind == "quadratic":
		iw, ow = _default_widths(request.input_width, request.output_width)
		check_width("output width", ow)
		if ow + extra_bits <= 6:
			raise ConfigurationError("The spline needs more than 6 working bits, got {}".format(
				ow + extra_bits))
		if phase_bits is None:
			phase_bits = minimal_phase_bits(max(iw, ow) + extra_bits)
		if phase_bits <= 4:
			raise ConfigurationError("The spline needs more than 4 phase bits, got {}".format(
				phase_bits))
		if ow + extra_bits >= 31:
			raise ConfigurationError("Spline coefficients wider than 30 bits are not supported")
	else:
		# The input width of a plain table is its phase width
		ow = request.output_width
		if request.input_width is not None:
			if phase_bits is None:
				phase_bits = request.input_width
			else:
				logger.warning("Input width %d ignored for sine table generation",
					request.input_width)
		if ow is None and phase_bits is not None and phase_bits > 3:
			ow = _infer_output_width(phase_bits)
		if ow is None:
			logger.warning("Assuming an output bit-width of %d bits", DEFAULT_BITWIDTH)
			ow = DEFAULT_BITWIDTH
		check_width("output width", ow)
		if ow >= 31:
			raise ConfigurationError("Table entries wider than 30 bits are not supported")
		if phase_bits is None:
			phase_bits = minimal_phase_bits(ow)
		check_phase_bits(phase_bits)
		if kind == "direct" and phase_bits >= MAX_DIRECT_LGSZ:
			raise ConfigurationError("Requested table size 2^{} is greater than 2^{} entries".format(
				phase_bits, MAX_DIRECT_LGSZ-1))
		if kind == "quarter" and phase_bits < 4:
			raise ConfigurationError("A quarter wave table needs at least 4 phase bits, got {}".format(
				phase_bits))
		if kind == "quarter" and phase_bits >= MAX_QUARTER_LGSZ:
			raise ConfigurationError("Requested table size 2^{} is greater than 2^{} entries".format(
				phase_bits, MAX_QUARTER_LGSZ-1))

	config = TableConfiguration(
		kind=kind,
		output_width=ow,
		extra_bits=extra_bits,
		phase_bits=phase_bits,
		reset_policy=request.reset_policy,
		aux_enabled=request.aux,
		linear_only=request.linear_only)
	logger.info("%s sine table: OW=%d PW=%d XTRA=%d", kind, ow, phase_bits, extra_bits)
	return config
