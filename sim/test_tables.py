import unittest
from math import pi, sin

from migen import *

from cordicgen.config import GenerationRequest, resolve_table_configuration
from cordicgen.errors import ConfigurationError, ConvergenceError
from cordicgen.model import SplineModel, TableModel
from cordicgen.quadtbl import QuadTableCore, build_quadratic_table, spur_db
from cordicgen.sintable import SineTable, QuarterWaveTable, direct_table, quarter_table

# Sweep phases through a table core, one per cycle, with aux tags riding along
def sweep(dut, phases):
	results = []
	aux = []
	yield dut.ce.eq(1)
	for t in range(len(phases) + dut.latency + 1):
		if t < len(phases):
			yield dut.i_phase.eq(phases[t])
			if dut.config.aux_enabled:
				yield dut.i_aux.eq(phases[t] & 1)
		results.append((yield dut.o_sin))
		if dut.config.aux_enabled:
			aux.append((yield dut.o_aux))
		yield
	return results[dut.latency+1:], aux[dut.latency+1:]

def simulate(dut, phases):
	out = {}
	def gen():
		out["results"], out["aux"] = yield from sweep(dut, phases)
	run_simulation(dut, gen())
	return out["results"], out["aux"]

class TestSimpleTables(unittest.TestCase):
	def test_direct_contents(self):
		table = direct_table(6, 10)
		self.assertEqual(len(table), 64)
		self.assertEqual(table[0], 0)
		for k, v in enumerate(table):
			self.assertEqual(v, int(511*sin(2.0*pi*k/64)))

	def test_quarter_symmetry(self):
		table = quarter_table(8, 12)
		self.assertEqual(len(table), 64)
		self.assertTrue(all(v > 0 for v in table))
		self.assertEqual(table, sorted(table))

	def test_direct_simulation(self):
		config = resolve_table_configuration(GenerationRequest("tbl", output_width=10,
			phase_bits=7, aux=True))
		dut = SineTable(config)
		model = TableModel(config, dut.table)
		phases = list(range(128)) + [5, 100, 3]
		results, aux = simulate(dut, phases)
		self.assertEqual(results, [model(p) for p in phases])
		self.assertEqual(aux, [p & 1 for p in phases])

	def test_quarter_simulation(self):
		config = resolve_table_configuration(GenerationRequest("qtr", output_width=12,
			phase_bits=9, aux=True))
		dut = QuarterWaveTable(config)
		self.assertEqual(dut.latency, 3)
		model = TableModel(config, dut.table)
		phases = list(range(512))
		results, aux = simulate(dut, phases)
		self.assertEqual(results, [model(p) for p in phases])
		self.assertEqual(aux, [p & 1 for p in phases])
		for p, v in zip(phases, results):
			self.assertLessEqual(abs(v - 2047*sin(2.0*pi*(p + 0.5)/512)), 1.0)

	def test_table_configuration(self):
		# -i gives the phase width, the output width follows from it
		config = resolve_table_configuration(GenerationRequest("tbl", input_width=10))
		self.assertEqual(config.phase_bits, 10)
		self.assertEqual(config.output_width, 6)
		self.assertRaises(ConfigurationError, resolve_table_configuration,
			GenerationRequest("tbl", output_width=12, phase_bits=24))
		self.assertRaises(ConfigurationError, resolve_table_configuration,
			GenerationRequest("qtr", output_width=12, phase_bits=26))
		self.assertRaises(ConfigurationError, resolve_table_configuration,
			GenerationRequest("qtr", output_width=4, phase_bits=3))
		self.assertRaises(ConfigurationError, resolve_table_configuration,
			GenerationRequest("tbl", output_width=31, phase_bits=8))

class TestQuadraticTable(unittest.TestCase):
	def test_reference_table(self):
		table = build_quadratic_table(13, 3)
		self.assertEqual(table.lgsz, 6)
		self.assertEqual(table.entries, 64)
		self.assertLessEqual(abs(table.error), 1.0)
		self.assertAlmostEqual(table.error_sin, -3.80e-6, delta=0.01e-6)
		self.assertAlmostEqual(table.spur_db, -107.97, delta=0.01)
		self.assertEqual(spur_db(6), table.spur_db)

	def test_coefficient_widths(self):
		table = build_quadratic_table(13, 3)
		for values, bits in ((table.cvalues, table.cbits), (table.lvalues, table.lbits),
		  (table.qvalues, table.qbits)):
			self.assertTrue(all(-(1 << (bits-1)) <= v < (1 << (bits-1)) for v in values))

	def test_convergence_cap(self):
		with self.assertRaises(ConvergenceError) as cm:
			build_quadratic_table(13, 3, max_lgsz=5)
		self.assertGreater(abs(cm.exception.last_error), 1.0)
		self.assertTrue(issubclass(ConvergenceError, RuntimeError))

	def test_configuration(self):
		config = resolve_table_configuration(GenerationRequest("qtbl", 13, 13, 3, phase_bits=18))
		self.assertEqual(config.kind, "quadratic")
		self.assertRaises(ConfigurationError, resolve_table_configuration,
			GenerationRequest("qtbl", 4, 4, 2))
		self.assertRaises(ConfigurationError, resolve_table_configuration,
			GenerationRequest("qtbl", 12, 12, 3, phase_bits=4))
		self.assertRaises(ConfigurationError, resolve_table_configuration,
			GenerationRequest("qtbl", 28, 28, 3))

	def check_core(self, config, phases):
		table = build_quadratic_table(config.output_width, config.extra_bits, config.linear_only)
		dut = QuadTableCore(config, table)
		model = SplineModel(config, table)
		results, aux = simulate(dut, phases)
		self.assertEqual(results, [model(p) for p in phases])
		self.assertEqual(aux, [p & 1 for p in phases])
		full = (1 << (config.output_width-1)) - 1
		for p, v in zip(phases, results):
			self.assertLessEqual(abs(v - full*sin(2.0*pi*p/(1 << config.phase_bits))), 2.0)
		return dut

	def test_simulation(self):
		config = resolve_table_configuration(GenerationRequest("qtbl", 13, 13, 3,
			phase_bits=18, aux=True))
		phases = [k*1021 % (1 << 18) for k in range(300)] + [0, 1 << 16, 1 << 17, 3 << 16]
		dut = self.check_core(config, phases)
		self.assertEqual(dut.latency, 6)

	def test_linear_only(self):
		config = resolve_table_configuration(GenerationRequest("qtbl", 10, 10, 3,
			phase_bits=14, aux=True, linear_only=True))
		phases = [k*97 % (1 << 14) for k in range(300)]
		dut = self.check_core(config, phases)
		self.assertEqual(dut.latency, 4)
		self.assertFalse(any(dut.table.qvalues))

if __name__ == "__main__":
	unittest.main()
