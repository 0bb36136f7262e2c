from pycrn.generator.base import KineticsGenerator
from pycrn.generator.ode import OdeGenerator
from pycrn.generator.sde import SdeGenerator
from pycrn.generator.jump import JumpGenerator
