import numpy as np
import pandas as pd
from pathlib import Path

rng = np.random.default_rng(7)

n_discs = 60
conditions = rng.choice(["Normoxia", "Hypoxia", "17C"], size=n_discs)
sexes = rng.choice(["F", "M"], size=n_discs)
ids = [f"disc_{i:03d}" for i in range(n_discs)]

# Mean wing shape, jittered and scaled per disc
mean_shape = rng.uniform(0, 100, size=(15, 2))
sizes = rng.normal(loc=1.0, scale=0.15, size=n_discs).clip(0.5, 1.6)

landmark_rows = []
for disc_id, cond, sex, size in zip(ids, conditions, sexes, sizes):
    shape = mean_shape * size + rng.normal(scale=1.5, size=mean_shape.shape)
    row = {
        "Id": disc_id,
        "Condition": cond,
        "Sex": sex,
        "Centroid Size": size,
        "Log Centroid Size": np.log(size),
    }
    for i, (x, y) in enumerate(shape, start=1):
        row[f"X{i}"] = x
        row[f"Y{i}"] = y
    landmark_rows.append(row)

areas = sizes ** 2 * 50000 + rng.normal(scale=2000, size=n_discs)
params = pd.DataFrame(
    {
        "disc": ids,
        "condition": conditions,
        "area": areas,
        "A": rng.uniform(0.05, 0.2, size=n_discs),
        "B": rng.uniform(0.8, 1.0, size=n_discs),
        "C": rng.normal(0, 5, size=n_discs),
        "D": rng.normal(25, 5, size=n_discs).clip(5, None),
    }
)

profile_rows = []
distance = np.linspace(-100, 100, 41)
for p in params.itertuples(index=False):
    signal = p.A + (1 - p.A) * np.exp(-((distance - p.C) ** 2) / (2 * p.D ** 2))
    noisy = signal * 800 + rng.normal(scale=20, size=distance.size)
    for d, v in zip(distance, noisy):
        profile_rows.append(
            {"disc": p.disc, "condition": p.condition, "area": p.area, "relativedistance": d, "value": v}
        )

out = Path("data")
out.mkdir(exist_ok=True)
pd.DataFrame(landmark_rows).to_csv(out / "landmarks.csv", index=False)
params.to_csv(out / "gradient_parameters.csv", index=False)
pd.DataFrame(profile_rows).to_csv(out / "raw_gradients.csv", index=False)
print("wrote", out / "landmarks.csv", out / "gradient_parameters.csv", out / "raw_gradients.csv")
