"""
Analysis dispatch and question-group handling for surveystats.
"""

from surveystats.analysis.groups import Question, QuestionGroup, detect_question_groups
from surveystats.analysis.runner import ANALYSIS_KINDS, run_analysis, run_auto_analysis
