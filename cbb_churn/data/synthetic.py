"""
Synthetic customer records with the cbb schema.

Used for the demo script when no data file is available, and for tests
that need a known relationship between features and churn.
"""

import numpy as np
import pandas as pd

SIGNALS = ("realistic", "threshold", "noise")


def generate_sample_data(
    n_customers: int = 1000,
    seed: int = 42,
    signal: str = "realistic",
    extract_date: str = "2024-06-30"
) -> pd.DataFrame:
    """
    Generate customer records at a single extraction date.

    Signals:
    - realistic: churn probability rises with falling usage, short tenure
      and the cheapest product (~20% churners)
    - threshold: churn is 1 exactly when ``arpu`` exceeds its median
    - noise: churn is a fair coin flip, independent of every feature
    """
    if signal not in SIGNALS:
        raise ValueError(f"Unknown signal: {signal}. Available: {list(SIGNALS)}")

    rng = np.random.RandomState(seed)

    products = rng.choice(["BAS", "PLU", "PRE", "UNL"], size=n_customers, p=[0.4, 0.3, 0.2, 0.1])
    fee_by_product = {"BAS": 9.99, "PLU": 19.99, "PRE": 29.99, "UNL": 49.99}
    access_fee = np.array([fee_by_product[p] for p in products])

    # Usage two and one months back, then the current window
    arpu_t2 = np.round(rng.gamma(shape=4.0, scale=10.0, size=n_customers), 2)
    arpu_t1 = np.round(np.clip(arpu_t2 + rng.normal(0, 5, n_customers), 0, None), 2)
    arpu = np.round(np.clip(arpu_t1 + rng.normal(-1, 6, n_customers), 0, None), 2)

    billed_t1 = np.round(access_fee + 0.4 * arpu_t1, 2)
    billed_amt = np.round(access_fee + 0.4 * arpu, 2)

    tenure_months = rng.randint(1, 121, size=n_customers)
    age = rng.randint(18, 90, size=n_customers)
    zip_code = rng.choice(["1010", "1100", "4020", "5020", "6020", "8010", "9020"], size=n_customers)

    if signal == "threshold":
        churn = (arpu > np.median(arpu)).astype(int)
    elif signal == "noise":
        churn = rng.randint(0, 2, size=n_customers)
    else:
        usage_drop = (arpu_t1 - arpu) / 10.0
        logit = (
            -0.7
            + 0.8 * usage_drop
            - 0.015 * tenure_months
            + 0.6 * (products == "BAS")
            - 0.01 * (age - 50)
        )
        churn = (rng.random_sample(n_customers) < 1.0 / (1.0 + np.exp(-logit))).astype(int)

    return pd.DataFrame({
        "cust_id": [f"C{idx:06d}" for idx in range(1, n_customers + 1)],
        "extract_date": pd.Timestamp(extract_date),
        "product_code": products,
        "access_fee": access_fee,
        "access_fee_t1": access_fee,
        "access_fee_t2": access_fee,
        "arpu": arpu,
        "arpu_t1": arpu_t1,
        "arpu_t2": arpu_t2,
        "billed_amt": billed_amt,
        "billed_amt_t1": billed_t1,
        "zip_code": zip_code,
        "tenure_months": tenure_months,
        "age": age,
        "churn": churn,
    })
