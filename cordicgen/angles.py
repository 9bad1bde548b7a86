from collections import namedtuple
from math import atan2, pi

from cordicgen.solver import exact_angle, check_phase_bits

StageAngle = namedtuple("StageAngle", "index phase_units degrees")

# Angles are truncated, never rounded, toward zero phase units
def stage_angles(nstages, phase_bits):
	check_phase_bits(phase_bits)
	angles = []
	for k in range(nstages):
		degrees = atan2(1.0, 2.0**(k+1))*180.0/pi
		angles.append(StageAngle(k, int(exact_angle(k, phase_bits)), degrees))
	return angles

# Stages with a zero angle, or shifting by the whole working width, pass data through
def stage_is_active(angle, working_width):
	return angle.phase_units != 0 and angle.index < working_width

def format_angle_table(angles, phase_bits):
	lines = []
	ndigits = (phase_bits + 3)//4
	for a in angles:
		lines.append("angle[{:2d}] = {:d}'h{:0{}x}  // {:11.6f} deg".format(
			a.index, phase_bits, a.phase_units, ndigits, a.degrees))
	return "\n".join(lines)
