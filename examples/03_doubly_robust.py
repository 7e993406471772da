"""
Doubly robust estimation: one nuisance model wrong
==================================================
AIPW stays close to the true effect when either the propensity model or the
outcome model is replaced by a bad one; IPW with a bad propensity model does not.
"""

import numpy as np

from mindset import Dataset, OutcomeModel, PropensityModel, simulate_mindset
from mindset.estimators import aipw_ate, ipw_ate

ds = Dataset.from_frame(simulate_mindset(n=5_000, effect=5.0, seed=1))
y, w = ds.outcome, ds.treatment

ps = PropensityModel.fit(ds).predict(ds)
mu0, mu1 = OutcomeModel.fit(ds).predict(ds)

bad_ps = np.full(ds.n, 0.5)
bad_mu = np.zeros(ds.n)

print(f"IPW, correct propensity          : {ipw_ate(y, w, ps):8.4f}")
print(f"IPW, flat propensity             : {ipw_ate(y, w, bad_ps):8.4f}")
print(f"AIPW, correct both               : {aipw_ate(y, w, ps, mu0, mu1):8.4f}")
print(f"AIPW, flat propensity            : {aipw_ate(y, w, bad_ps, mu0, mu1):8.4f}")
print(f"AIPW, zero outcome model         : {aipw_ate(y, w, ps, bad_mu, bad_mu):8.4f}")
