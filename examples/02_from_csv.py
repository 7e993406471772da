"""
Growth-mindset ATE: from a CSV file
===================================
Usage::

    python examples/02_from_csv.py learning_mindset.csv

The file needs the outcome (``achievement_score``), treatment
(``intervention``) and the ten study covariates.
"""

import logging
import sys

from mindset import MindsetAnalysis, StudyConfig, load_dataset

logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

config = StudyConfig(n_boot=100, n_jobs=-1)
data = load_dataset(sys.argv[1], config)
result = MindsetAnalysis(config).fit(data)

print(result.summary())
print(result.to_frame().round(4).to_string())
print(result.balance.summary())
print(result.refute(data).summary())
