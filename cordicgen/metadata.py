import logging

from cordicgen.quadtbl import max_integer
from cordicgen.solver import error_model

logger = logging.getLogger(__name__)

def _flags(config):
	return {
		"has_reset": config.reset_policy != "none",
		"has_aux": config.aux_enabled,
		"async_reset": config.reset_policy == "async"
	}

def describe(config, model=None):
	"""Parameters and error model of a rotation engine, as recorded in the
	header written next to the Verilog module."""
	if model is None:
		model = error_model(config)
	r = {
		"iw": config.input_width,
		"ow": config.output_width,
		"nextra": config.extra_bits,
		"ww": config.working_width,
		"pw": config.phase_bits,
		"nstages": config.stage_count,
		"quantization_variance": model.quantization_variance,
		"phase_variance_rad": model.phase_variance_rad,
		"gain": model.gain,
		"best_possible_cnr": model.best_possible_cnr_db
	}
	if config.architecture == "iterative":
		r["clocks_per_output"] = config.stage_count + 1
	r.update(_flags(config))
	return r

def describe_table(config, table=None):
	r = {
		"ow": config.output_width,
		"nextra": config.extra_bits,
		"pw": config.phase_bits
	}
	if table is not None:
		r["tbl_lgsz"] = table.lgsz
		r["tbl_sz"] = table.entries
		r["scale"] = max_integer(config.output_width)
		r["itbl_err"] = table.error
		r["tbl_err"] = table.error*0.5**(config.output_width + config.extra_bits)
		r["spurdb"] = table.spur_db
	r.update(_flags(config))
	return r

# Include guard for a header: file name upper cased, dots to underscores
def guard_name(filename):
	return filename.upper().replace(".", "_").replace("-", "_").replace("/", "_")

def render_header(name, record):
	guard = guard_name(name)
	r = "#ifndef\t" + guard + "\n"
	r += "#define\t" + guard + "\n"
	if record["async_reset"]:
		r += "#define\tASYNC_RESET\n"
	if "clocks_per_output" in record:
		r += "#ifdef\tCLOCKS_PER_OUTPUT\n"
		r += "#undef\tCLOCKS_PER_OUTPUT\n"
		r += "#endif\t// CLOCKS_PER_OUTPUT\n"
		r += "#define\tCLOCKS_PER_OUTPUT\t{}\n\n".format(record["clocks_per_output"])
	for key in ("iw", "ow", "nextra", "ww", "pw", "nstages"):
		if key in record:
			r += "const int\t{} = {};\n".format(key.upper(), record[key])
	if "gain" in record:
		r += "const double\tQUANTIZATION_VARIANCE = {:.4e}; // (Units^2)\n".format(
			record["quantization_variance"])
		r += "const double\tPHASE_VARIANCE_RAD = {:.4e}; // (Radians^2)\n".format(
			record["phase_variance_rad"])
		r += "const double\tGAIN = {:.16f};\n".format(record["gain"])
		r += "const double\tBEST_POSSIBLE_CNR = {:.2f};\n".format(record["best_possible_cnr"])
	if "tbl_lgsz" in record:
		r += "const long\tTBL_LGSZ = {}; // (Units)\n".format(record["tbl_lgsz"])
		r += "const long\tTBL_SZ = {}; // (Units)\n".format(record["tbl_sz"])
		r += "const long\tSCALE = {}; // (Units)\n".format(record["scale"])
		r += "const double\tITBL_ERR = {:.2f}; // (OW Units)\n".format(record["itbl_err"])
		r += "const double\tTBL_ERR = {:.16f}; // (sin Units)\n".format(record["tbl_err"])
		r += "const double\tSPURDB = {:6.2f}; // dB\n".format(record["spurdb"])
	r += "const bool\tHAS_RESET = {};\n".format("true" if record["has_reset"] else "false")
	r += "const bool\tHAS_AUX   = {};\n".format("true" if record["has_aux"] else "false")
	if record["has_reset"]:
		r += "#define\tHAS_RESET_WIRE\n"
	if record["has_aux"]:
		r += "#define\tHAS_AUX_WIRES\n"
	r += "#endif\t// " + guard + "\n"
	return r

# Write the header, or warn and carry on when it cannot be created
def write_header(filename, name, record):
	try:
		with open(filename, "w") as f:
			f.write(render_header(name, record))
	except OSError as e:
		logger.warning("Could not write header %s: %s", filename, e)
		return False
	logger.info("Wrote header %s", filename)
	return True
