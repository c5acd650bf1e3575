"""
Surveystats package for classical survey data analysis.

Descriptive statistics, Cronbach's alpha reliability analysis, Pearson
correlation, t-test, ANOVA, simple regression and principal component
analysis over tabular survey data.
"""

__version__ = '0.1.0'

from surveystats.analysis import run_analysis, run_auto_analysis
from surveystats.components.config import Config, ConfigManager
