import hydra
from omegaconf import DictConfig, OmegaConf
import bpolr
from bpolr.inference.inference_config import select_engine_settings
import pandas as pd
import pickle
import os


@hydra.main(version_base=None, config_path="conf", config_name="config")
def main(cfg: DictConfig) -> None:
    print("Running with config:\n", OmegaConf.to_yaml(cfg))
    print(f"Current working directory: {os.getcwd()}")

    # Load data
    data_path = hydra.utils.to_absolute_path(cfg.data.path)
    df = pd.read_csv(data_path)

    # Ordered response; level order from the config, else sorted values
    levels = cfg.data.get("levels")
    if levels is None:
        levels = sorted(df[cfg.data.response].dropna().unique())
    y = pd.Categorical(
        df[cfg.data.response], categories=list(levels), ordered=True
    )

    predictors = cfg.data.get("predictors")
    if predictors is None:
        predictors = [c for c in df.columns if c != cfg.data.response]
    x = df[list(predictors)]

    # Prepare arguments for fit_polr from the config
    kwargs = OmegaConf.to_container(cfg, resolve=True)

    # Build the R2 prior; a null location means a flat prior
    prior_kwargs = kwargs.pop("prior")
    if prior_kwargs.get("location") is None:
        prior = None
    else:
        prior = bpolr.R2(**prior_kwargs)

    prior_counts = bpolr.dirichlet(kwargs.pop("prior_counts"))

    # Move the settings of the selected algorithm to top level
    inference_kwargs = kwargs.pop("inference")
    kwargs["algorithm"] = inference_kwargs.pop("algorithm")
    kwargs.update(select_engine_settings(kwargs["algorithm"], inference_kwargs))

    # Remove keys that are not arguments to fit_polr
    del kwargs["data"]
    if "hydra" in kwargs:
        del kwargs["hydra"]

    # Run the inference
    results = bpolr.fit_polr(
        x, y, prior=prior, prior_counts=prior_counts, **kwargs
    )

    print("Inference complete.")
    print(results.summary())

    # Save the results in the Hydra output directory
    from hydra.core.hydra_config import HydraConfig

    hydra_cfg = HydraConfig.get()
    output_dir = hydra_cfg.runtime.output_dir
    output_file = os.path.join(output_dir, "bpolr_results.pkl")
    print(f"Saving results to {output_file}")
    with open(output_file, "wb") as f:
        pickle.dump(results, f)


if __name__ == "__main__":
    main()
