from migen.fhdl.structure import *
from migen.fhdl.module import Module
from migen.genlib.fsm import FSM, NextState, NextValue

from cordicgen.angles import stage_angles, stage_is_active
from cordicgen.crg import CRG
from cordicgen.errors import ConfigurationError

# Increment which, added to value, rounds it to nearest even once the
# dropped low bits are removed. Exact halves only round up from an odd
# retained LSB.
def rounding_increment(value, dropped):
	if dropped < 1:
		raise ValueError("nothing to round")
	if dropped == 1:
		return value[1]
	return Cat(Replicate(~value[dropped], dropped-1), value[dropped])

# Place an input sample in the working width. Rotate mode keeps one guard
# bit above the sample, vectoring mode two, so neither the CORDIC gain nor
# the 45 degree pre-rotation can overflow.
def extend_input(config, value):
	iw, ww = config.input_width, config.working_width
	sign = value[iw-1]
	if config.mode == "vectoring":
		guard = [sign, sign]
	else:
		guard = [sign]
	low = ww - iw - len(guard)
	parts = []
	if low > 0:
		parts.append(Constant(0, low))
	parts.append(value)
	return Cat(*(parts + guard))

def _rotate_prereduction(config, x, y, phase, px, py, pph):
	quarter = 1 << (config.phase_bits-2)
	top = phase[config.phase_bits-3:config.phase_bits]
	def identity():
		return [px.eq(x), py.eq(y), pph.eq(phase)]
	def plus90():
		return [px.eq(-y), py.eq(x), pph.eq(phase - quarter)]
	def plus180():
		return [px.eq(-x), py.eq(-y), pph.eq(phase - 2*quarter)]
	def plus270():
		return [px.eq(y), py.eq(-x), pph.eq(phase - 3*quarter)]
	return Case(top, {
		0: identity(),
		1: plus90(),
		2: plus90(),
		3: plus180(),
		4: plus180(),
		5: plus270(),
		6: plus270(),
		7: identity()
	})

def _vectoring_prerotation(config, x, y, px, py, pph):
	ww = config.working_width
	eighth = 1 << (config.phase_bits-3)
	signs = Cat(y[ww-1], x[ww-1])
	return Case(signs, {
		0b00: [px.eq(x + y), py.eq(y - x), pph.eq(eighth)],
		0b01: [px.eq(x - y), py.eq(x + y), pph.eq(7*eighth)],
		0b10: [px.eq(y - x), py.eq(-x - y), pph.eq(3*eighth)],
		0b11: [px.eq(-x - y), py.eq(x - y), pph.eq(5*eighth)]
	})

# Quadrant pre-reduction, leaving at most 45 degrees for the micro-rotations
def prereduction(config, x, y, phase, px, py, pph):
	if config.mode == "rotate":
		return _rotate_prereduction(config, x, y, phase, px, py, pph)
	return _vectoring_prerotation(config, x, y, px, py, pph)

# One micro-rotation by +/- atan(2^-shift). Rotate mode steers the residual
# phase toward zero, vectoring mode steers y toward zero.
def micro_rotation(mode, x, y, ph, tx, ty, tph, shift, angle):
	if mode == "rotate":
		return If(ph[len(ph)-1],
			tx.eq(x + (y >> shift)),
			ty.eq(y - (x >> shift)),
			tph.eq(ph + angle)
		).Else(
			tx.eq(x - (y >> shift)),
			ty.eq(y + (x >> shift)),
			tph.eq(ph - angle)
		)
	return If(y[len(y)-1],
		tx.eq(x - (y >> shift)),
		ty.eq(y + (x >> shift)),
		tph.eq(ph - angle)
	).Else(
		tx.eq(x + (y >> shift)),
		ty.eq(y - (x >> shift)),
		tph.eq(ph + angle)
	)

class RotationCore(Module):
	def __init__(self, config):
		self.config = config
		self.angles = stage_angles(config.stage_count, config.phase_bits)
		iw, ow, ww, pw = (config.input_width, config.output_width,
			config.working_width, config.phase_bits)
		self.dropped_bits = ww - ow

		self.submodules.crg = CRG(config.reset_policy)

		self.i_x = Signal((iw, True), name_override="i_x")
		self.i_y = Signal((iw, True), name_override="i_y")
		if config.mode == "rotate":
			self.i_phase = Signal(pw, name_override="i_phase")
			self.o_x = Signal((ow, True), name_override="o_x")
			self.o_y = Signal((ow, True), name_override="o_y")
		else:
			self.o_mag = Signal(ow, name_override="o_mag")
			self.o_phase = Signal(pw, name_override="o_phase")
		if config.aux_enabled:
			self.i_aux = Signal(name_override="i_aux")
			self.o_aux = Signal(name_override="o_aux")

		###

		# extended and quadrant reduced input, combinatorial
		ex = Signal((ww, True))
		ey = Signal((ww, True))
		self.px = Signal((ww, True))
		self.py = Signal((ww, True))
		self.pph = Signal(pw)
		self.comb += [
			ex.eq(extend_input(config, self.i_x)),
			ey.eq(extend_input(config, self.i_y))
		]
		if config.mode == "rotate":
			phase = self.i_phase
		else:
			phase = None
		self.comb += prereduction(config, ex, ey, phase, self.px, self.py, self.pph)

	def rounded(self, value):
		ww = self.config.working_width
		r = Signal((ww+1, True))
		self.comb += r.eq(value + rounding_increment(value, self.dropped_bits))
		return r[self.dropped_bits:ww]

	# (output, value) pairs from the final x, y and phase
	def outputs(self, x, y, ph):
		if self.config.mode == "rotate":
			return [(self.o_x, self.rounded(x)), (self.o_y, self.rounded(y))]
		return [(self.o_mag, self.rounded(x)), (self.o_phase, ph)]

	def get_ios(self):
		ios = self.crg.get_ios()
		ios |= {self.i_x, self.i_y}
		if self.config.mode == "rotate":
			ios |= {self.i_phase, self.o_x, self.o_y}
		else:
			ios |= {self.o_mag, self.o_phase}
		if self.config.aux_enabled:
			ios |= {self.i_aux, self.o_aux}
		return ios

class PipelinedCordic(RotationCore):
	"""Fully unrolled CORDIC.

	One register layer per micro-rotation, plus the quadrant reduction
	layer and the rounded output layer. Accepts a sample on every cycle
	``ce`` is high and produces its result ``latency`` enabled cycles
	later.
	"""
	def __init__(self, config):
		super().__init__(config)
		n = config.stage_count
		ww, pw = config.working_width, config.phase_bits
		self.latency = n + 2
		self.clocks_per_output = 1

		self.ce = Signal(name_override="i_ce")

		###

		xs = [Signal((ww, True), name="x{}".format(i)) for i in range(n+1)]
		ys = [Signal((ww, True), name="y{}".format(i)) for i in range(n+1)]
		phs = [Signal(pw, name="ph{}".format(i)) for i in range(n+1)]

		self.sync += If(self.ce,
			xs[0].eq(self.px),
			ys[0].eq(self.py),
			phs[0].eq(self.pph)
		)
		for angle in self.angles:
			k = angle.index
			if stage_is_active(angle, ww):
				step = [micro_rotation(config.mode, xs[k], ys[k], phs[k],
					xs[k+1], ys[k+1], phs[k+1], k+1, Constant(angle.phase_units, pw))]
			else:
				step = [xs[k+1].eq(xs[k]), ys[k+1].eq(ys[k]), phs[k+1].eq(phs[k])]
			self.sync += If(self.ce, *step)

		self.sync += If(self.ce,
			*[o.eq(v) for o, v in self.outputs(xs[n], ys[n], phs[n])]
		)

		if config.aux_enabled:
			aux = Signal(self.latency)
			self.sync += If(self.ce, aux.eq(Cat(self.i_aux, aux[:-1])))
			self.comb += self.o_aux.eq(aux[-1])

	def get_ios(self):
		return super().get_ios() | {self.ce}

class IterativeCordic(RotationCore):
	"""Time multiplexed CORDIC reusing a single micro-rotation stage.

	``start`` is taken while the engine is not ``busy``; the rounded
	result is valid while ``done`` pulses, stage_count + 1 cycles later.
	A start seen during the done cycle is accepted at once, so back to
	back operations take stage_count + 1 cycles each.
	"""
	def __init__(self, config):
		super().__init__(config)
		n = config.stage_count
		ww, pw = config.working_width, config.phase_bits
		self.latency = n + 1
		self.clocks_per_output = n + 1

		self.start = Signal(name_override="i_start")
		self.busy = Signal(name_override="o_busy")
		self.done = Signal(name_override="o_done")

		###

		x = Signal((ww, True))
		y = Signal((ww, True))
		ph = Signal(pw)
		idx = Signal(max=n)
		aux = Signal()

		# stage arithmetic, shared by every iteration
		nx = Signal((ww, True))
		ny = Signal((ww, True))
		nph = Signal(pw)
		shift = Signal(max=n+1)
		angle = Array(Constant(a.phase_units, pw) for a in self.angles)[idx]
		self.comb += shift.eq(idx + 1)
		step = micro_rotation(config.mode, x, y, ph, nx, ny, nph, shift, angle)
		if all(stage_is_active(a, ww) for a in self.angles):
			self.comb += step
		else:
			active = Array(Constant(int(stage_is_active(a, ww)), 1) for a in self.angles)[idx]
			self.comb += If(active, step).Else(nx.eq(x), ny.eq(y), nph.eq(ph))

		def load():
			r = [
				NextValue(x, self.px),
				NextValue(y, self.py),
				NextValue(ph, self.pph),
				NextValue(idx, 0),
				NextState("ITERATE")
			]
			if config.aux_enabled:
				r.append(NextValue(aux, self.i_aux))
			return r

		finish = [NextValue(o, v) for o, v in self.outputs(nx, ny, nph)]
		if config.aux_enabled:
			finish.append(NextValue(self.o_aux, aux))

		self.submodules.fsm = fsm = FSM(reset_state="IDLE")
		fsm.act("IDLE",
			If(self.start, *load())
		)
		fsm.act("ITERATE",
			self.busy.eq(1),
			NextValue(x, nx),
			NextValue(y, ny),
			NextValue(ph, nph),
			NextValue(idx, idx + 1),
			If(idx == n - 1,
				NextState("DONE"),
				*finish
			)
		)
		fsm.act("DONE",
			self.done.eq(1),
			If(self.start,
				*load()
			).Else(
				NextState("IDLE")
			)
		)

	def get_ios(self):
		return super().get_ios() | {self.start, self.busy, self.done}

def build_rotation_core(config):
	if config.architecture == "pipelined":
		return PipelinedCordic(config)
	elif config.architecture == "iterative":
		return IterativeCordic(config)
	raise ConfigurationError("Unsupported architecture " + repr(config.architecture))
