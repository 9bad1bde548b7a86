from migen.fhdl.structure import *
from migen.fhdl.module import Module
from migen.genlib.resetsync import AsyncResetSynchronizer

from cordicgen.errors import ConfigurationError

# Clock and reset generation for a generated core.
#
# none:  the sys domain has no reset, registers only take their initial value
# sync:  sys_rst is a synchronous, active high reset input
# async: areset_n is an asynchronous, active low reset input. It clears every
#        sys register at once and its release reaches the logic through two
#        flip-flops.
class CRG(Module):
	def __init__(self, reset_policy):
		self.reset_policy = reset_policy
		if reset_policy == "none":
			self.clock_domains.cd_sys = ClockDomain("sys", reset_less=True)
		elif reset_policy in ("sync", "async"):
			self.clock_domains.cd_sys = ClockDomain("sys")
		else:
			raise ConfigurationError("Unsupported reset policy " + repr(reset_policy))

		if reset_policy == "async":
			self.areset_n = Signal(name_override="areset_n", reset=1)
			arst = Signal()
			self.comb += arst.eq(~self.areset_n)
			self.specials += AsyncResetSynchronizer(self.cd_sys, arst)

	def get_ios(self):
		ios = {self.cd_sys.clk}
		if self.reset_policy == "sync":
			ios.add(self.cd_sys.rst)
		elif self.reset_policy == "async":
			ios.add(self.areset_n)
		return ios

	def finalize_source(self, output):
		"""Make areset_n clear the sys registers of a converted module
		without waiting for a clock edge."""
		if self.reset_policy == "async":
			ns = output.ns
			output.set_main_source(insert_async_reset(output.main_source,
				ns.get_name(self.cd_sys.clk), ns.get_name(self.cd_sys.rst),
				ns.get_name(self.areset_n)))
		return output

# migen prints a clock domain as a single always block whose last statement
# is "if (<rst>) begin <resets> end". Those reset assignments become the
# asynchronous branch, the original block runs unchanged in the else branch.
def insert_async_reset(source, clk, rst, areset_n):
	header = "always @(posedge " + clk + ") begin\n"
	start = source.find(header)
	if start < 0:
		return source
	stop = source.index("\nend\n", start)
	body = source[start+len(header):stop+1].splitlines()

	resets = []
	branch = "\tif (" + rst + ") begin"
	if branch in body:
		first = len(body) - 1 - body[::-1].index(branch)
		resets = body[first+1:-1]

	r = "always @(posedge " + clk + ", negedge " + areset_n + ") begin\n"
	r += "\tif (!" + areset_n + ") begin\n"
	r += "".join(line + "\n" for line in resets)
	r += "\tend else begin\n"
	r += "".join("\t" + line + "\n" for line in body)
	r += "\tend\n"
	r += "end\n"
	return source[:start] + r + source[stop+len("\nend\n"):]

# Verilog rendering of AsyncResetSynchronizer, used as a special override
# since generated cores are not tied to any vendor primitive.
class AsyncResetSynchronizerImpl:
	@staticmethod
	def emit_verilog(dr, ns, add_data_file):
		clk = ns.get_name(dr.cd.clk)
		rst = ns.get_name(dr.cd.rst)
		arst = ns.get_name(dr.async_reset)
		meta = rst + "_meta"
		rsync = rst + "_sync"
		r = "reg " + meta + " = 1'd1;\n"
		r += "reg " + rsync + " = 1'd1;\n"
		r += "always @(posedge " + clk + ", posedge " + arst + ") begin\n"
		r += "\tif (" + arst + ") begin\n"
		r += "\t\t" + meta + " <= 1'd1;\n"
		r += "\t\t" + rsync + " <= 1'd1;\n"
		r += "\tend else begin\n"
		r += "\t\t" + meta + " <= 1'd0;\n"
		r += "\t\t" + rsync + " <= " + meta + ";\n"
		r += "\tend\n"
		r += "end\n"
		r += "assign " + rst + " = " + rsync + ";\n\n"
		return r
