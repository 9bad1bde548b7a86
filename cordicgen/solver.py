import logging
from collections import namedtuple
from math import atan2, log10, pi, sin, sqrt

from cordicgen.errors import ConfigurationError

logger = logging.getLogger(__name__)

ErrorModel = namedtuple("ErrorModel",
	"gain quantization_variance phase_variance_rad best_possible_cnr_db")

# Search limits for the enumerative solvers
MAX_PHASE_BITS = 64
MAX_STAGES = 64

def check_width(name, width):
	if width <= 0:
		raise ConfigurationError("{} must be positive, got {}".format(name, width))

def check_phase_bits(phase_bits):
	if phase_bits < 3:
		raise ConfigurationError("At least 3 phase bits are required, got {}".format(phase_bits))

# Ceiling of log2(v): 3 -> 2, 4 -> 2, 5 -> 3
def nextlg(v):
	lg = 0
	r = 1
	while r < v:
		r <<= 1
		lg += 1
	return lg

# Number of phase units in one radian
def phase_scale(phase_bits):
	return (4.0*(1 << (phase_bits-2)))/(pi*2.0)

# Exact angle of micro-rotation k, in phase units
def exact_angle(k, phase_bits):
	return atan2(1.0, 2.0**(k+1))*phase_scale(phase_bits)

def cordic_gain(nstages):
	gain = 1.0
	for k in range(nstages):
		gain *= sqrt(1.0 + 2.0**(-2*(k+1)))
	return gain

def phase_variance(nstages, phase_bits):
	"""Variance, in radians^2, of the phase error caused by truncating
	the input phase and every stage angle to whole phase units."""
	check_phase_bits(phase_bits)
	rad_to_phase = (1 << (phase_bits-1))/pi
	variance = 1.0/12.0
	for k in range(nstages):
		x = atan2(1.0, 2.0**(k+1))*rad_to_phase
		err = int(x) - x
		variance += err*err
	return variance/rad_to_phase**2

def quantization_variance(nstages, extra_bits, dropped_bits):
	"""Variance, in output LSB^2, of the rounding noise accumulated by the
	shift-add recurrence, including the final output rounding."""
	variance = 2.0**(2*extra_bits)/12.0
	for k in range(nstages):
		variance = (1 + 4.0**(-k-1))*variance + 1.0/3.0
	if dropped_bits > 0:
		variance = 2.0**(-2*dropped_bits)*variance + 1.0/12.0
	return variance

def minimal_stage_count(working_width, phase_bits):
	check_width("working width", working_width)
	check_phase_bits(phase_bits)
	nstages = 0
	while nstages < MAX_STAGES:
		if int(exact_angle(nstages, phase_bits)) == 0:
			break
		if working_width <= nstages:
			break
		nstages += 1
	return nstages

# The smallest phase step must move a full scale sine by less than half an LSB
def minimal_phase_bits(width):
	check_width("width", width)
	for phase_bits in range(3, MAX_PHASE_BITS):
		ds = sin(2.0*pi/(1 << phase_bits))*((1 << width) - 1)
		if ds < 0.5:
			return phase_bits
	raise ConfigurationError("No phase width below {} bits resolves a {} bit output".format(
		MAX_PHASE_BITS, width))

def best_possible_cnr(input_width, output_width, working_width, nstages, phase_bits):
	gain = cordic_gain(nstages)
	amplitude = (1 << (input_width-1)) - 1.0
	amplitude *= 1 << (working_width-input_width)
	amplitude *= gain
	amplitude *= 2.0**(-(working_width-output_width))
	signal_energy = amplitude*amplitude

	noise_energy = quantization_variance(nstages,
		working_width-input_width, working_width-output_width)
	noise_energy += signal_energy*phase_variance(nstages, phase_bits)*2.0**gain
	return 10.0*log10(signal_energy/noise_energy)

def error_model(config):
	model = ErrorModel(
		gain=cordic_gain(config.stage_count),
		quantization_variance=quantization_variance(config.stage_count,
			config.working_width - config.input_width,
			config.working_width - config.output_width),
		phase_variance_rad=phase_variance(config.stage_count, config.phase_bits),
		best_possible_cnr_db=best_possible_cnr(config.input_width, config.output_width,
			config.working_width, config.stage_count, config.phase_bits))
	logger.info("gain %.8f, quantization variance %.4e, phase variance %.4e rad^2, best CNR %.2f dB",
		*model)
	return model
