from cordicgen.angles import stage_angles, stage_is_active

# Reduce an integer to a register of the given width
def wrap(value, bits, signed=True):
	value &= (1 << bits) - 1
	if signed and value & (1 << (bits-1)):
		value -= 1 << bits
	return value

# Drop the low bits of a register, rounding to nearest even
def round_to_even(value, dropped, bits, signed=True):
	if dropped == 1:
		inc = (value >> 1) & 1
	else:
		lsb = (value >> dropped) & 1
		if lsb:
			inc = 1 << (dropped-1)
		else:
			inc = (1 << (dropped-1)) - 1
	return wrap((value + inc) >> dropped, bits - dropped, signed)

def extend_input(config, value):
	guard = 2 if config.mode == "vectoring" else 1
	return value << (config.working_width - config.input_width - guard)

class CordicModel:
	"""Bit accurate model of the rotation engines.

	Both architectures compute exactly the same function, so one model
	serves the pipelined and the iterative cores.
	"""
	def __init__(self, config):
		self.config = config
		self.angles = stage_angles(config.stage_count, config.phase_bits)

	def _prereduce(self, x, y, phase):
		pw = self.config.phase_bits
		if self.config.mode == "rotate":
			quarter = 1 << (pw-2)
			top = phase >> (pw-3)
			if top in (1, 2):
				x, y, ph = -y, x, phase - quarter
			elif top in (3, 4):
				x, y, ph = -x, -y, phase - 2*quarter
			elif top in (5, 6):
				x, y, ph = y, -x, phase - 3*quarter
			else:
				ph = phase
		else:
			eighth = 1 << (pw-3)
			if x >= 0 and y >= 0:
				x, y, ph = x + y, y - x, eighth
			elif x >= 0:
				x, y, ph = x - y, x + y, 7*eighth
			elif y >= 0:
				x, y, ph = y - x, -x - y, 3*eighth
			else:
				x, y, ph = -x - y, x - y, 5*eighth
		return x, y, ph

	def __call__(self, x, y, phase=0):
		cfg = self.config
		ww, pw = cfg.working_width, cfg.phase_bits
		x = wrap(extend_input(cfg, x), ww)
		y = wrap(extend_input(cfg, y), ww)
		x, y, ph = self._prereduce(x, y, phase)
		x, y, ph = wrap(x, ww), wrap(y, ww), wrap(ph, pw, False)

		for angle in self.angles:
			if not stage_is_active(angle, ww):
				continue
			s = angle.index + 1
			a = angle.phase_units
			if cfg.mode == "rotate":
				negative = ph >> (pw-1)
			else:
				negative = y < 0
			if negative == (cfg.mode == "rotate"):
				x, y, ph = x + (y >> s), y - (x >> s), ph + a
			else:
				x, y, ph = x - (y >> s), y + (x >> s), ph - a
			x, y, ph = wrap(x, ww), wrap(y, ww), wrap(ph, pw, False)

		dropped = ww - cfg.output_width
		if cfg.mode == "rotate":
			return round_to_even(x, dropped, ww), round_to_even(y, dropped, ww)
		return round_to_even(x, dropped, ww, False), ph

class TableModel:
	def __init__(self, config, table):
		self.config = config
		self.table = table

	def __call__(self, phase):
		cfg = self.config
		if cfg.kind == "direct":
			return self.table[phase]
		pw = cfg.phase_bits
		index = phase & ((1 << (pw-2)) - 1)
		if phase & (1 << (pw-2)):
			index ^= (1 << (pw-2)) - 1
		value = self.table[index]
		if phase >> (pw-1):
			return wrap(-value, cfg.output_width)
		return value

class SplineModel:
	def __init__(self, config, table):
		self.config = config
		self.table = table

	def __call__(self, phase):
		cfg, t = self.config, self.table
		pw, ow, xtra = cfg.phase_bits, cfg.output_width, cfg.extra_bits
		shift = pw - t.lgsz
		index = phase >> shift
		dx = phase & ((1 << shift) - 1)
		if t.linear_only:
			lsum = t.lvalues[index]
		else:
			qprod = t.qvalues[index]*dx
			lsum = (qprod >> shift) + t.lvalues[index]
		value = ((lsum*dx) >> shift) + t.cvalues[index]
		if xtra > 0:
			value = round_to_even(value, xtra, value.bit_length() + xtra + 2)
		top = (1 << (ow-1)) - 1
		return max(-top-1, min(top, value))
