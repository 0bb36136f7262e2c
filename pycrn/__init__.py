__version__ = '0.1.0'

from pycrn.core import *
from pycrn.ratelaws import RateLawRegistry, RateLaw
from pycrn.builder import NetworkBuilder, compile_network
from pycrn.generator import OdeGenerator, SdeGenerator, JumpGenerator

__all__ = ['compile_network', 'NetworkBuilder', 'Network', 'Reaction',
           'Species', 'Parameter', 'RateLawRegistry', 'RateLaw',
           'OdeGenerator', 'SdeGenerator', 'JumpGenerator', 'CompileError',
           'MalformedLineError', 'ArityMismatchError',
           'UnknownIdentifierError', 'UnknownRateFunctionError',
           'DuplicateDeclarationError', 'DegenerateReactionError',
           'InvalidComponentNameError', 'DomainFault',
           'UnusedParameterWarning']
