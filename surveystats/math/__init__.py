"""
Statistical computation engine for surveystats.
"""

from surveystats.math.comparison import anova, regression, t_test
from surveystats.math.corr import correlation, correlation_matrix
from surveystats.math.descriptive import describe, describe_values
from surveystats.math.factor import bartlett_test, factor_analysis, kmo
from surveystats.math.linalg import Matrix
from surveystats.math.named_matrix import NamedMatrix
from surveystats.math.pca import eigen_decompose, varimax
from surveystats.math.reliability import cronbach_alpha, full_reliability_analysis
