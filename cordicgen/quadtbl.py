import logging
from math import ceil, log, pi, sin

import numpy as np

from migen.fhdl.structure import *

from cordicgen.config import MAX_SPLINE_LGSZ
from cordicgen.errors import ConfigurationError, ConvergenceError
from cordicgen.rotation import rounding_increment
from cordicgen.sintable import SineTableCore, rom

logger = logging.getLogger(__name__)

# Interior points sampled per segment when measuring the fit error
ERROR_SAMPLES = 64

def sinc(v):
	x = v*pi
	return sin(x)/x

# Largest coefficient magnitude, leaving headroom for the interpolation error
def max_integer(width):
	return (1 << (width-1)) - 2

def spur_level(lgsz):
	return sinc(1.0 - 1.0/(1 << lgsz))**3

def spur_db(lgsz):
	return 20.0*log(spur_level(lgsz))/log(10.0)

def fit_quadratic_table(lgsz):
	"""Quadratic coefficients for a 2^lgsz segment sine table.

	Each segment i covers phases [i, i+1) of the table and is evaluated
	as c + (l + q*dx)*dx for 0 <= dx < 1. Returns the (c, l, q) arrays,
	normalized so the largest constant has unit magnitude.
	"""
	n = 1 << lgsz
	dl = pi/n
	dph = 2.0*dl
	i = np.arange(n)

	samples = np.sin(dph*i + dl)
	nxt = np.roll(samples, -1)
	prv = np.roll(samples, 1)
	slope = (nxt - prv)/2.0
	dslope = -(samples - 0.5*(nxt + prv))

	# the constant term, as seen through the quadratic filter
	table = 0.75*np.sin(dph*i + dl) + (np.sin(dph*(i-1) + dl) + np.sin(dph*(i+1) + dl))/8.0

	# move the origin from the segment center to its left edge
	table = dslope*0.5*0.5 - slope*0.5 + table
	slope = slope - dslope

	# average an unscaled sine wave
	fctr = (1.0/sinc(dl))**3
	table = table*fctr
	slope = slope*fctr
	dslope = dslope*fctr

	mxtbl = np.max(np.abs(table))
	table = table*(1.0/mxtbl)
	slope = slope*(1.0/mxtbl)
	dslope = dslope*(1.0/mxtbl)
	return table, slope, dslope

def segment_errors(c, l, q):
	"""Signed worst fit error of every segment, from both segment edges and
	ERROR_SAMPLES evenly spaced interior points."""
	n = len(c)
	idx = np.arange(n)
	lft = c - np.sin(2.0*pi*idx/n)
	rht = c + l + q - np.sin(2.0*pi*(idx+1)/n)

	mdx = np.arange(ERROR_SAMPLES)/float(ERROR_SAMPLES)
	mer = (c[:, None] + (l[:, None] + q[:, None]*mdx)*mdx
		- np.sin(2.0*pi*(idx[:, None] + mdx)/n))
	mid = mer[idx, np.argmax(np.abs(mer), axis=1)]

	err = np.where(np.abs(lft) < np.abs(rht), rht, lft)
	return np.where(np.abs(err) < np.abs(mid), mid, err)

def max_spline_error(c, l, q):
	err = segment_errors(c, l, q)
	return float(err[np.argmax(np.abs(err))])

def _coefficient_bits(width, mx):
	return width + int(ceil(-log(1.0/mx)/log(2.0)))

class QuadSplineTable:
	def __init__(self, lgsz, width, linear_only=False):
		self.lgsz = lgsz
		self.entries = 1 << lgsz
		self.width = width
		self.linear_only = linear_only
		self.scale = max_integer(width)

		c, l, q = fit_quadratic_table(lgsz)
		if linear_only:
			# fold the curvature into the slope and drop it
			l = l + q
			q = np.zeros(len(q))
		self.constants, self.slopes, self.curvatures = c, l, q

		mxerr = max_spline_error(c, l, q)
		self.error = mxerr*self.scale
		self.error_sin = self.error*0.5**width
		self.spur_db = spur_db(lgsz)

		self.cbits = width + int(ceil(log(np.max(np.abs(c)))/log(2.0)))
		self.lbits = _coefficient_bits(width, np.max(np.abs(l)))
		if linear_only:
			self.qbits = 0
		else:
			self.qbits = _coefficient_bits(width, np.max(np.abs(q)))

		self.cvalues = [int(self.scale*v) for v in c]
		self.lvalues = [int(self.scale*v) for v in l]
		self.qvalues = [int(self.scale*v) for v in q]
		logger.debug("L=%d: error %f LSB, CBITS:LBITS:QBITS = %d:%d:%d",
			lgsz, self.error, self.cbits, self.lbits, self.qbits)

def build_quadratic_table(output_width, extra_bits, linear_only=False,
  max_lgsz=MAX_SPLINE_LGSZ):
	width = output_width + extra_bits
	lgsz = 3
	while True:
		lgsz += 1
		table = QuadSplineTable(lgsz, width, linear_only)
		if abs(table.error) <= 1.0:
			break
		if lgsz >= max_lgsz:
			raise ConvergenceError(
				"Spline table did not reach 1 LSB within 2^{} entries, last error {:f} LSB".format(
					lgsz, table.error), table.error)
	logger.info("Spline table of %d entries, error %.2f LSB (%.3e), spur %.2f dB",
		table.entries, table.error, table.error_sin, table.spur_db)
	return table

class QuadTableCore(SineTableCore):
	"""Sine wave from a quadratically interpolated table.

	The top LGTBL phase bits select a segment, the rest form the offset
	dx within it. The pipeline evaluates ((q*dx) + l)*dx + c, then rounds
	away the extra bits. Linear only tables skip the first multiply.
	"""
	def __init__(self, config, table):
		super().__init__(config)
		self.table = table
		pw, ow, xtra = config.phase_bits, config.output_width, config.extra_bits
		if pw <= table.lgsz:
			raise ConfigurationError("{} phase bits cannot address a {} entry table".format(
				pw, table.entries))
		dxbits = pw - table.lgsz + 1
		shift = dxbits - 1

		###

		segment = self.i_phase[shift:pw]

		self.specials.ctbl = rom(table.cvalues, table.cbits, "ctbl")
		self.specials.ltbl = rom(table.lvalues, table.lbits, "ltbl")
		cport = self.ctbl.get_port(async_read=True)
		lport = self.ltbl.get_port(async_read=True)
		self.specials += cport, lport
		self.comb += [
			cport.adr.eq(segment),
			lport.adr.eq(segment)
		]

		# clock 1: coefficients and the offset within the segment
		cv = Signal((table.cbits, True))
		lv = Signal((table.lbits, True))
		dx = Signal((dxbits, True))
		self.sync += If(self.ce,
			cv.eq(cport.dat_r),
			lv.eq(lport.dat_r),
			dx.eq(self.i_phase[:shift])
		)

		if table.linear_only:
			lsum, dx_l, cv_l = lv, dx, cv
			latency = 4
		else:
			self.specials.qtbl = rom(table.qvalues, table.qbits, "qtbl")
			qport = self.qtbl.get_port(async_read=True)
			self.specials += qport
			self.comb += qport.adr.eq(segment)
			qv = Signal((table.qbits, True))
			self.sync += If(self.ce, qv.eq(qport.dat_r))

			# clock 2: quadratic product
			qprod = Signal((table.qbits + dxbits, True))
			cv_1 = Signal((table.cbits, True))
			lv_1 = Signal((table.lbits, True))
			dx_1 = Signal((dxbits, True))
			self.sync += If(self.ce,
				qprod.eq(qv*dx),
				cv_1.eq(cv),
				lv_1.eq(lv),
				dx_1.eq(dx)
			)

			# clock 3: linear term
			lsum = Signal((max(table.lbits, table.qbits + 1) + 1, True))
			cv_l = Signal((table.cbits, True))
			dx_l = Signal((dxbits, True))
			self.sync += If(self.ce,
				lsum.eq((qprod >> shift) + lv_1),
				cv_l.eq(cv_1),
				dx_l.eq(dx_1)
			)
			latency = 6

		# second (or only) multiply
		lprod = Signal((len(lsum) + dxbits, True))
		cv_c = Signal((table.cbits, True))
		self.sync += If(self.ce,
			lprod.eq(lsum*dx_l),
			cv_c.eq(cv_l)
		)

		# constant term
		rwidth = max(table.cbits, len(lsum) + 1) + 1
		r_value = Signal((rwidth, True))
		self.sync += If(self.ce, r_value.eq((lprod >> shift) + cv_c))

		# round away the extra bits, saturating at full scale
		hi = Signal((rwidth + 1 - xtra, True))
		if xtra > 0:
			rnd = Signal((rwidth + 1, True))
			self.comb += [
				rnd.eq(r_value + rounding_increment(r_value, xtra)),
				hi.eq(rnd[xtra:])
			]
		else:
			self.comb += hi.eq(r_value)
		top = (1 << (ow-1)) - 1
		self.sync += If(self.ce,
			If(hi > top,
				self.o_sin.eq(top)
			).Elif(hi < -top-1,
				self.o_sin.eq(-top-1)
			).Else(
				self.o_sin.eq(hi)
			)
		)
		self.delay_aux(latency)

def build_quadratic_core(config):
	table = build_quadratic_table(config.output_width, config.extra_bits, config.linear_only)
	return QuadTableCore(config, table)
