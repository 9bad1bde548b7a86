import logging
import os

from migen.fhdl import verilog
from migen.fhdl.specials import Memory
from migen.genlib.resetsync import AsyncResetSynchronizer

from cordicgen.config import (DEFAULT_FILENAMES, resolve_configuration,
	resolve_table_configuration)
from cordicgen.crg import AsyncResetSynchronizerImpl
from cordicgen.hexfile import hextable
from cordicgen.metadata import describe, describe_table, write_header
from cordicgen.quadtbl import build_quadratic_core
from cordicgen.rotation import build_rotation_core
from cordicgen.sintable import SineTable, QuarterWaveTable
from cordicgen.tools import module_name, write_to_file

logger = logging.getLogger(__name__)

# Memory rendering that initializes every table from a $readmemh hex file
# named after the module and the memory
def hex_memory(basename):
	class HexMemory:
		@staticmethod
		def emit_verilog(memory, ns, add_data_file):
			def add_hex_file(filename, contents):
				return add_data_file(basename + "_" + memory.name_override + ".hex",
					hextable(memory.init, memory.width))
			return Memory.emit_verilog(memory, ns, add_hex_file)
	return HexMemory

class GeneratedCore:
	def __init__(self, request):
		self.request = request
		if request.filename == "-":
			self.name = module_name(DEFAULT_FILENAMES[request.kind])
		else:
			self.name = module_name(request.filename)
		if request.is_rotation():
			self.config = resolve_configuration(request)
			self.module = build_rotation_core(self.config)
			self.record = describe(self.config)
		else:
			self.config = resolve_table_configuration(request)
			if self.config.kind == "direct":
				self.module = SineTable(self.config)
				self.record = describe_table(self.config)
			elif self.config.kind == "quarter":
				self.module = QuarterWaveTable(self.config)
				self.record = describe_table(self.config)
			else:
				self.module = build_quadratic_core(self.config)
				self.record = describe_table(self.config, self.module.table)

	def convert(self):
		overrides = {
			AsyncResetSynchronizer: AsyncResetSynchronizerImpl,
			Memory: hex_memory(self.name)
		}
		output = verilog.convert(self.module, ios=self.module.get_ios(), name=self.name,
			special_overrides=overrides)
		return self.module.crg.finalize_source(output)

	def header_filename(self):
		return os.path.splitext(self.request.filename)[0] + ".h"

	def build(self):
		"""Write the Verilog module, its table files and, if requested, the
		C header. Returns the list of files written."""
		output = self.convert()
		source = output.main_source
		written = []
		if self.request.filename == "-":
			print(source)
			directory = os.getcwd()
		else:
			write_to_file(self.request.filename, source)
			written.append(self.request.filename)
			directory = os.path.dirname(os.path.abspath(self.request.filename))
		for filename, contents in sorted(output.data_files.items()):
			path = os.path.join(directory, filename)
			write_to_file(path, contents)
			written.append(path)
		for filename in written:
			logger.info("Wrote %s", filename)

		if self.request.header:
			if self.request.filename == "-":
				logger.warning("No header written for a module sent to stdout")
			else:
				header = self.header_filename()
				if write_header(header, os.path.basename(header), self.record):
					written.append(header)
		return written

def build_core(request):
	return GeneratedCore(request)
