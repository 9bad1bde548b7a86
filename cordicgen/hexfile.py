from cordicgen.errors import ConfigurationError

# Render table entries for $readmemh: fixed width two's complement hex,
# eight entries per line, each line led by its address
def hextable(data, width):
	if width >= 31:
		raise ConfigurationError("Hex table entries are limited to 30 bits, got {}".format(width))
	if len(data) < 4:
		raise ConfigurationError("Hex tables need at least 4 entries, got {}".format(len(data)))
	nc = (width + 3)//4
	mask = (1 << width) - 1
	r = ""
	for k, v in enumerate(data):
		if v > mask or v < -mask-1:
			raise ValueError("Entry {} ({}) does not fit in {} bits".format(k, v, width))
		if k % 8 == 0:
			if k:
				r += "\n"
			r += "@{:08x} ".format(k)
		r += "{:0{}x} ".format(v & mask, nc)
	r += "\n"
	return r
