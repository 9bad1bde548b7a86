import logging
from math import sin, pi

from migen.fhdl.structure import *
from migen.fhdl.module import Module
from migen.fhdl.specials import Memory

from cordicgen.crg import CRG

logger = logging.getLogger(__name__)

def direct_table(phase_bits, width):
	n = 1 << phase_bits
	maxv = (1 << (width-1)) - 1
	return [int(maxv*sin(2.0*pi*k/n)) for k in range(n)]

# First quarter wave, sampled half a step off zero so that it is symmetric
# about a quarter turn
def quarter_table(phase_bits, width):
	n = 1 << phase_bits
	maxv = (1 << (width-1)) - 1
	return [int(maxv*sin(2.0*pi*k/n + pi/n)) for k in range(n//4)]

def rom(data, width, name):
	mask = (1 << width) - 1
	return Memory(width, len(data), init=[v & mask for v in data], name=name)

class SineTableCore(Module):
	def __init__(self, config):
		self.config = config
		self.submodules.crg = CRG(config.reset_policy)

		self.ce = Signal(name_override="i_ce")
		self.i_phase = Signal(config.phase_bits, name_override="i_phase")
		self.o_sin = Signal((config.output_width, True), name_override="o_sin")
		if config.aux_enabled:
			self.i_aux = Signal(name_override="i_aux")
			self.o_aux = Signal(name_override="o_aux")

	def delay_aux(self, latency):
		self.latency = latency
		if self.config.aux_enabled:
			aux = Signal(latency)
			if latency > 1:
				self.sync += If(self.ce, aux.eq(Cat(self.i_aux, aux[:-1])))
			else:
				self.sync += If(self.ce, aux.eq(self.i_aux))
			self.comb += self.o_aux.eq(aux[-1])

	def get_ios(self):
		ios = self.crg.get_ios() | {self.ce, self.i_phase, self.o_sin}
		if self.config.aux_enabled:
			ios |= {self.i_aux, self.o_aux}
		return ios

class SineTable(SineTableCore):
	def __init__(self, config):
		super().__init__(config)
		self.table = direct_table(config.phase_bits, config.output_width)
		logger.info("Direct sine table: %d entries of %d bits",
			len(self.table), config.output_width)

		###

		self.specials.tbl = rom(self.table, config.output_width, "tbl")
		port = self.tbl.get_port(async_read=True)
		self.specials += port
		self.comb += port.adr.eq(self.i_phase)
		self.sync += If(self.ce, self.o_sin.eq(port.dat_r))
		self.delay_aux(1)

class QuarterWaveTable(SineTableCore):
	def __init__(self, config):
		super().__init__(config)
		pw = config.phase_bits
		self.table = quarter_table(pw, config.output_width)
		logger.info("Quarter wave sine table: %d entries of %d bits",
			len(self.table), config.output_width)

		###

		negate = Signal(2)
		index = Signal(pw-2)
		value = Signal((config.output_width, True))

		self.specials.tbl = rom(self.table, config.output_width, "tbl")
		port = self.tbl.get_port(async_read=True)
		self.specials += port
		self.comb += port.adr.eq(index)
		self.sync += If(self.ce,
			# the second and fourth quarters read the table backwards
			negate[0].eq(self.i_phase[pw-1]),
			If(self.i_phase[pw-2],
				index.eq(~self.i_phase[:pw-2])
			).Else(
				index.eq(self.i_phase[:pw-2])
			),
			value.eq(port.dat_r),
			negate[1].eq(negate[0]),
			If(negate[1],
				self.o_sin.eq(-value)
			).Else(
				self.o_sin.eq(value)
			)
		)
		self.delay_aux(3)

