from math import pi

import numpy as np
import matplotlib.pyplot as plt

from migen import *

from cordicgen.config import GenerationRequest, resolve_configuration
from cordicgen.model import CordicModel
from cordicgen.rotation import build_rotation_core
from cordicgen.solver import error_model

# Spin a full scale vector once around the circle through a pipelined
# rotation core, then compare with the ideal rotation
request = GenerationRequest("p2r", 12, 12, 3)
config = resolve_configuration(request)
model = CordicModel(config)
npoints = 4096
amplitude = (1 << (config.input_width-1)) - 1
step = (1 << config.phase_bits)//npoints
phases = [k*step for k in range(npoints)]

received = []

def driver(dut):
	yield dut.ce.eq(1)
	for t in range(npoints + dut.latency + 1):
		if t < npoints:
			yield dut.i_x.eq(amplitude)
			yield dut.i_y.eq(0)
			yield dut.i_phase.eq(phases[t])
		received.append(((yield dut.o_x), (yield dut.o_y)))
		yield

def main():
	dut = build_rotation_core(config)
	run_simulation(dut, driver(dut), vcd_name="cordic_err.vcd")
	results = received[dut.latency+1:]

	# Check the core against the bit accurate model
	assert(results == [model(amplitude, 0, p) for p in phases])

	em = error_model(config)
	scale = amplitude*em.gain*2.0**(config.output_width - config.input_width - 1)
	th = 2.0*pi*np.array(phases)/(1 << config.phase_bits)
	got = np.array([x for x, y in results]) + 1j*np.array([y for x, y in results])
	err = got - scale*np.exp(1j*th)
	print("error variance {:.4f}, modeled {:.4f}".format(np.var(err), em.quantization_variance))

	spectrum = 20.0*np.log10(np.abs(np.fft.fft(got*np.hanning(npoints))) + 1e-12)
	spectrum -= np.max(spectrum)
	print("best possible CNR {:.2f} dB".format(em.best_possible_cnr_db))

	# Plot the error and its spectrum
	plt.subplot(2, 1, 1)
	plt.plot(np.real(err))
	plt.plot(np.imag(err))
	plt.subplot(2, 1, 2)
	plt.plot(np.fft.fftshift(spectrum))
	plt.show()

main()
