"""Statistical sampling, data generation and model-fitting modules."""

from . import data_generation as data_generation
from . import mixed_models as mixed_models
from . import random_effects as random_effects
from . import sampling as sampling
