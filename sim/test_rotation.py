import unittest
import random
from math import atan2, cos, hypot, pi, sin, sqrt

from migen import *

from cordicgen.config import GenerationRequest, resolve_configuration
from cordicgen.model import CordicModel, round_to_even
from cordicgen.rotation import PipelinedCordic, IterativeCordic, build_rotation_core
from cordicgen.solver import cordic_gain

def random_samples(config, count, seed):
	rng = random.Random(seed)
	top = (1 << (config.input_width-1)) - 1
	samples = [(top, 0, 0), (0, top, 0), (-top, -top, 0), (top, top, 1 << (config.phase_bits-1))]
	while len(samples) < count:
		samples.append((rng.randint(-top, top), rng.randint(-top, top),
			rng.randrange(1 << config.phase_bits)))
	return samples

def result_ports(dut):
	if dut.config.mode == "rotate":
		return dut.o_x, dut.o_y
	return dut.o_mag, dut.o_phase

def drive_inputs(dut, x, y, phase):
	yield dut.i_x.eq(x)
	yield dut.i_y.eq(y)
	if dut.config.mode == "rotate":
		yield dut.i_phase.eq(phase)

# Feed one sample per cycle; the result of the sample written at step t is
# read at step t + latency + 1
def run_pipelined(dut, samples, tags=None):
	results = []
	aux = []
	a, b = result_ports(dut)
	yield dut.ce.eq(1)
	for t in range(len(samples) + dut.latency + 1):
		if t < len(samples):
			yield from drive_inputs(dut, *samples[t])
			if tags is not None:
				yield dut.i_aux.eq(tags[t])
		results.append(((yield a), (yield b)))
		if tags is not None:
			aux.append((yield dut.o_aux))
		yield
	return results[dut.latency+1:], aux

def run_iterative(dut, samples, results):
	a, b = result_ports(dut)
	for sample in samples:
		yield from drive_inputs(dut, *sample)
		yield dut.start.eq(1)
		yield
		yield dut.start.eq(0)
		cycles = 1
		while not (yield dut.done):
			yield
			cycles += 1
		results.append(((yield a), (yield b), cycles))

class RotationCase(unittest.TestCase):
	kind = "p2r"
	widths = (12, 12, 3)

	def config(self, **kwargs):
		return resolve_configuration(GenerationRequest(self.kind, *self.widths, **kwargs))

	def pipelined(self, config, samples):
		dut = PipelinedCordic(config)
		out = {}
		def gen():
			out["results"], _ = yield from run_pipelined(dut, samples)
		run_simulation(dut, gen())
		return out["results"]

	def iterative(self, config, samples):
		dut = IterativeCordic(config)
		results = []
		run_simulation(dut, run_iterative(dut, samples, results))
		return results

class TestRotate(RotationCase):
	def test_pipelined_matches_model(self):
		config = self.config()
		model = CordicModel(config)
		samples = random_samples(config, 200, 1)
		results = self.pipelined(config, samples)
		self.assertEqual(len(results), len(samples))
		for sample, result in zip(samples, results):
			self.assertEqual(result, model(*sample), sample)

	def test_accuracy(self):
		config = self.config()
		model = CordicModel(config)
		scale = cordic_gain(config.stage_count)*2.0**(config.output_width - config.input_width - 1)
		for x, y, phase in random_samples(config, 2000, 2):
			th = 2.0*pi*phase/(1 << config.phase_bits)
			ox, oy = model(x, y, phase)
			self.assertLessEqual(abs(ox - scale*(x*cos(th) - y*sin(th))), 3.0)
			self.assertLessEqual(abs(oy - scale*(x*sin(th) + y*cos(th))), 3.0)

	def test_architectures_agree(self):
		config = self.config()
		iconfig = config._replace(architecture="iterative")
		samples = random_samples(config, 40, 3)
		piped = self.pipelined(config, samples)
		iterated = self.iterative(iconfig, samples)
		self.assertEqual(piped, [(a, b) for a, b, cycles in iterated])
		for a, b, cycles in iterated:
			self.assertEqual(cycles, config.stage_count + 2)

	def test_aux_alignment(self):
		config = self.config(aux=True)
		dut = PipelinedCordic(config)
		samples = random_samples(config, 64, 4)
		rng = random.Random(5)
		tags = [rng.randint(0, 1) for s in samples]
		out = {}
		def gen():
			out["results"], out["aux"] = yield from run_pipelined(dut, samples, tags)
		run_simulation(dut, gen())
		self.assertEqual(out["aux"][dut.latency+1:], tags)
		self.assertEqual(dut.latency, config.stage_count + 2)

	def test_clock_enable_holds(self):
		config = self.config()
		dut = PipelinedCordic(config)
		model = CordicModel(config)
		x, y, phase = 1000, -300, 12345
		seen = []
		def gen():
			yield from drive_inputs(dut, x, y, phase)
			yield dut.ce.eq(1)
			for i in range(dut.latency + 1):
				yield
			yield dut.ce.eq(0)
			yield from drive_inputs(dut, 0, 0, 0)
			for i in range(10):
				seen.append(((yield dut.o_x), (yield dut.o_y)))
				yield
		run_simulation(dut, gen())
		self.assertEqual(seen, [model(x, y, phase)]*10)

	def test_inactive_stages(self):
		# more stages than the phase width resolves, the tail passes data through
		config = self.config(phase_bits=10, stage_count=12)
		model = CordicModel(config)
		samples = random_samples(config, 30, 6)
		piped = self.pipelined(config, samples)
		iterated = self.iterative(config._replace(architecture="iterative"), samples)
		for sample, p, i in zip(samples, piped, iterated):
			self.assertEqual(p, model(*sample))
			self.assertEqual(p, i[:2])

class TestVectoring(RotationCase):
	kind = "r2p"

	def test_pipelined_matches_model(self):
		config = self.config()
		model = CordicModel(config)
		samples = random_samples(config, 200, 7)
		results = self.pipelined(config, samples)
		for sample, result in zip(samples, results):
			self.assertEqual(result, model(*sample), sample)

	def test_accuracy(self):
		config = self.config()
		model = CordicModel(config)
		pw = config.phase_bits
		scale = sqrt(2.0)*cordic_gain(config.stage_count)*2.0**(
			config.output_width - config.input_width - 2)
		for x, y, phase in random_samples(config, 2000, 8):
			mag, ph = model(x, y)
			expected = scale*hypot(x, y)
			self.assertLessEqual(abs(mag - expected), 3.0)
			if expected > 64:
				err = (ph - atan2(y, x)*(1 << pw)/(2.0*pi)) % (1 << pw)
				err = min(err, (1 << pw) - err)*2.0*pi/(1 << pw)
				self.assertLessEqual(err, 4.0/expected + 1e-4)

	def test_architectures_agree(self):
		config = self.config()
		samples = random_samples(config, 40, 9)
		piped = self.pipelined(config, samples)
		iterated = self.iterative(config._replace(architecture="iterative"), samples)
		self.assertEqual(piped, [(a, b) for a, b, cycles in iterated])

class TestIterativeHandshake(RotationCase):
	kind = "sp2r"

	def test_back_to_back(self):
		config = self.config()
		dut = build_rotation_core(config)
		self.assertIsInstance(dut, IterativeCordic)
		done_at = []
		busy = []
		def gen():
			yield from drive_inputs(dut, 1000, 0, 0)
			yield dut.start.eq(1)
			for cycle in range(4*(config.stage_count + 1) + 2):
				if (yield dut.done):
					done_at.append(cycle)
				busy.append((yield dut.busy))
				yield
		run_simulation(dut, gen())
		self.assertGreaterEqual(len(done_at), 3)
		spacing = [b - a for a, b in zip(done_at, done_at[1:])]
		self.assertEqual(spacing, [config.stage_count + 1]*len(spacing))
		self.assertEqual(sum(busy[done_at[0]+1:done_at[1]]), config.stage_count)

	def test_start_while_busy_ignored(self):
		config = self.config()
		dut = IterativeCordic(config)
		model = CordicModel(config)
		result = []
		def gen():
			yield from drive_inputs(dut, 1500, -700, 99999)
			yield dut.start.eq(1)
			yield
			yield from drive_inputs(dut, -3, 5, 7)
			for i in range(3):
				yield
			yield dut.start.eq(0)
			while not (yield dut.done):
				yield
			result.append(((yield dut.o_x), (yield dut.o_y)))
		run_simulation(dut, gen())
		self.assertEqual(result, [model(1500, -700, 99999)])

	def test_aux_on_done(self):
		config = self.config(aux=True)
		dut = IterativeCordic(config)
		model = CordicModel(config)
		samples = random_samples(config, 6, 10)
		tags = [1, 0, 1, 1, 0, 1]
		seen = []
		def gen():
			for sample, tag in zip(samples, tags):
				yield from drive_inputs(dut, *sample)
				yield dut.i_aux.eq(tag)
				yield dut.start.eq(1)
				yield
				yield dut.start.eq(0)
				while not (yield dut.done):
					yield
				seen.append(((yield dut.o_x), (yield dut.o_y), (yield dut.o_aux)))
		run_simulation(dut, gen())
		self.assertEqual(seen, [model(*s) + (t,) for s, t in zip(samples, tags)])

class TestSyncReset(RotationCase):
	def test_pipeline_cleared(self):
		config = self.config(aux=True)
		dut = PipelinedCordic(config)
		model = CordicModel(config)
		x, y, phase = 1000, -300, 12345
		before = []
		during = []
		after = []
		def gen():
			yield dut.ce.eq(1)
			yield from drive_inputs(dut, x, y, phase)
			yield dut.i_aux.eq(1)
			for i in range(dut.latency + 2):
				yield
			before.append(((yield dut.o_x), (yield dut.o_y), (yield dut.o_aux)))
			# zero inputs keep flowing; only the reset can clear what is in flight
			yield from drive_inputs(dut, 0, 0, 0)
			yield dut.i_aux.eq(0)
			yield dut.crg.cd_sys.rst.eq(1)
			for i in range(3):
				yield
			during.append(((yield dut.o_x), (yield dut.o_y), (yield dut.o_aux)))
			yield dut.crg.cd_sys.rst.eq(0)
			for i in range(dut.latency + 3):
				yield
				after.append(((yield dut.o_x), (yield dut.o_y), (yield dut.o_aux)))
		run_simulation(dut, gen())
		self.assertEqual(before, [model(x, y, phase) + (1,)])
		self.assertNotEqual(before[0][:2], (0, 0))
		self.assertEqual(during, [(0, 0, 0)])
		self.assertEqual(after, [(0, 0, 0)]*(dut.latency + 3))

	def test_iterative_aborted(self):
		config = self.config()._replace(architecture="iterative")
		dut = IterativeCordic(config)
		model = CordicModel(config)
		state = []
		results = []
		def gen():
			yield from drive_inputs(dut, 1500, -700, 99999)
			yield dut.start.eq(1)
			yield
			yield dut.start.eq(0)
			for i in range(4):
				yield
			state.append((yield dut.busy))
			yield dut.crg.cd_sys.rst.eq(1)
			for i in range(3):
				yield
			yield dut.crg.cd_sys.rst.eq(0)
			yield
			state.append(((yield dut.busy), (yield dut.done), (yield dut.o_x), (yield dut.o_y)))
			for i in range(config.stage_count + 4):
				state.append((yield dut.done))
				yield
			# the engine is idle again and takes a new operation
			yield from run_iterative(dut, [(1500, -700, 99999)], results)
		run_simulation(dut, gen())
		self.assertEqual(state[0], 1)
		self.assertEqual(state[1], (0, 0, 0, 0))
		self.assertFalse(any(state[2:]))
		self.assertEqual(results, [model(1500, -700, 99999) + (config.stage_count + 2,)])

class TestRounding(unittest.TestCase):
	def test_round_to_even(self):
		# 2 dropped bits: .5 rounds to the even neighbour in both directions
		self.assertEqual(round_to_even(0b0110, 2, 8), 2)
		self.assertEqual(round_to_even(0b1010, 2, 8), 2)
		self.assertEqual(round_to_even(0b0111, 2, 8), 2)
		self.assertEqual(round_to_even(0b0101, 2, 8), 1)
		self.assertEqual(round_to_even(-6, 2, 8), -2)
		self.assertEqual(round_to_even(-10, 2, 8), -2)
		# a single dropped bit
		self.assertEqual(round_to_even(0b011, 1, 8), 2)
		self.assertEqual(round_to_even(0b101, 1, 8), 2)
		self.assertEqual(round_to_even(0b100, 1, 8), 2)

	def test_hardware_rounding(self):
		for dropped in (1, 2, 3):
			config = resolve_configuration(GenerationRequest("p2r", 10, 10, dropped, stage_count=1))
			ww = config.working_width

			# drive the rounding network of a core directly
			class Wrapper(Module):
				def __init__(self):
					self.submodules.dut = PipelinedCordic(config)
					self.value = Signal((ww, True))
					self.out = Signal((config.output_width, True))
					self.comb += self.out.eq(self.dut.rounded(self.value))
			w = Wrapper()
			values = list(range(-40, 40))
			seen = []
			def drive():
				for v in values:
					yield w.value.eq(v)
					yield
					seen.append((yield w.out))
			run_simulation(w, drive())
			self.assertEqual(seen, [round_to_even(v, dropped, ww) for v in values])

if __name__ == "__main__":
	unittest.main()
