"""Prompt templates for generated run logs.

The generative source asks a text model to narrate a run. Two log kinds:
- deployment: provision, data, pre-training, fine-tuning, save, deploy
- fine_tuning: setup, train, save (the model was pre-trained in a prior step)

Both instruct the model to interleave metric records on their own lines,
in exactly the shape the classifier decodes.
"""

from __future__ import annotations
from typing import Tuple

from .pipeline.context import ProjectConfig

METRIC_FORMAT = '{"type": "metric", "epoch": <epoch_number>, "loss": <loss_value>}'

DEPLOYMENT_SYSTEM_INSTRUCTION = f"""You are an MLOps AI engineer. Your task is to generate a realistic, step-by-step log for a full model training and deployment job based on the user's configuration.

**Crucial Instructions:**
1.  **Inject Training Metrics:** During the training phases (both pre-training and fine-tuning), you MUST output structured JSON objects on their own lines to represent training metrics. These are essential for the monitoring UI.
    -   The JSON format MUST be: `{METRIC_FORMAT}`
    -   Generate 5-7 metric updates for the pre-training phase. The loss value must start high (e.g., ~5.0) and decrease.
    -   Generate another 5-7 metric updates for the fine-tuning phase. The loss should start lower than the pre-training end loss and decrease further.
2.  **Follow a Realistic Flow:**
    -   **[PROVISION]**: Log provisioning the specified compute resources.
    -   **[DATA]**: Log downloading and preparing the dataset.
    -   **[TRAIN] (Pre-training)**: Start the pre-training loop on the base model. Intersperse the JSON metric objects with other training logs (e.g., learning rate, step progress). Conclude this phase.
    -   **[TRAIN] (Fine-tuning)**: Start the fine-tuning loop. The method choice is critical:
        -   **If PEFT (LoRA/QLoRA)**: Log loading the base model in a quantized format, attaching LoRA adapters, and training *only* adapter weights. Mention the small number of trainable parameters.
        -   **If Full Fine-tuning**: Log loading the full model weights and preparing all parameters for training. Mention the large number of trainable parameters.
        -   Intersperse JSON metric objects with logs.
    -   **[SAVE]**: Log saving the final model checkpoint.
    -   **[DEPLOY]**: Log packaging the model into a container, pushing it to a registry, and deploying it as a serverless endpoint. Mention creating a health check.
3.  **Formatting Rules:**
    -   Output only plain text log lines or the specified JSON metric objects.
    -   Do NOT use markdown.
    -   Start each non-JSON line with a status prefix like `[PROVISION]`, `[DATA]`, `[TRAIN]`, `[SAVE]`, `[DEPLOY]`.
    -   Generate a comprehensive log with around 30-40 total lines.
    -   Conclude with `[SUCCESS] Deployment successful. Endpoint is now active.`."""

FINE_TUNING_SYSTEM_INSTRUCTION = f"""You are an MLOps AI engineer. Your task is to generate a realistic, step-by-step log for a fine-tuning job based on the user's configuration. The log must be technical and specific.

**Crucial Instructions:**
1.  **Inject Training Metrics:** During the training phase, you MUST output structured JSON objects on their own lines to represent training metrics. These are essential for the monitoring UI.
    -   The JSON format MUST be: `{METRIC_FORMAT}`
    -   Generate 5-7 of these metric updates. The loss value must start around 2-3 and gradually decrease to below 1.0.
    -   Example metric line: `{{"type": "metric", "epoch": 1, "loss": 2.1534}}`
2.  **Follow a Realistic Flow:**
    -   **[SETUP]**: Load the pre-trained model weights from the previous step.
    -   **[SETUP]**: Tokenize and prepare the dataset.
    -   **[TRAIN]**: The training method choice is critical:
        -   **If PEFT (LoRA/QLoRA)**: Log loading the base model in a quantized format (e.g., 4-bit), attaching LoRA adapters to specific layers (e.g., 'q_proj', 'v_proj'), and training *only* the adapter weights. Mention the small number of trainable parameters.
        -   **If Full Fine-tuning**: Log loading the full model weights and preparing all parameters for training. Mention the large number of trainable parameters.
    -   **[TRAIN]**: Start the training loop. Intersperse the JSON metric objects with other training logs (e.g., learning rate schedule, step progress).
    -   **[SAVE]**: Log saving the final model checkpoint. For PEFT, this should be just the small adapter weights. For full tuning, it's the entire model.
3.  **Formatting Rules:**
-   Output only plain text log lines or the specified JSON metric objects.
-   Do NOT use markdown.
-   Start each non-JSON line with a status prefix like `[SETUP]`, `[TRAIN]`, `[SAVE]`.
-   Generate around 15-20 total lines (including metrics).
-   Conclude with `[SUCCESS] Fine-tuning complete. Model checkpoint saved successfully.`."""


def data_source_description(config: ProjectConfig) -> str:
    """How the pre-training data is described in the deployment prompt."""
    if config.data_method != "pretraining":
        return f'"{config.data_source}"'
    if config.data_source_id == "upload-report":
        return f'Uploaded file: "{config.dataset_topic}"'
    if config.dataset_topic:
        return f'AI-generated deep research report on "{config.dataset_topic}"'
    return f'"{config.data_source}"'


def deployment_prompt(config: ProjectConfig) -> Tuple[str, str]:
    """Return (system_instruction, user_prompt) for a full deployment log."""
    user = (
        "Generate the full deployment log for this configuration:\n"
        f'- Project Name: "{config.name}"\n'
        f'- Base Model: "{config.model}"\n'
        f'- Compute Tier: "{config.compute_tier}"\n'
        f"- Data Source for Pre-training: {data_source_description(config)}\n"
        f'- Fine-Tuning Method: "{config.fine_tuning_method}"\n'
    )
    return DEPLOYMENT_SYSTEM_INSTRUCTION, user


def fine_tuning_prompt(config: ProjectConfig) -> Tuple[str, str]:
    """Return (system_instruction, user_prompt) for a fine-tuning-only log."""
    user = (
        "Generate the fine-tuning log for this configuration:\n"
        f'- Base Model: "{config.model}" that was just pre-trained.\n'
        f'- Fine-Tuning Method: "{config.fine_tuning_method}"\n'
    )
    return FINE_TUNING_SYSTEM_INSTRUCTION, user


def build_prompt(config: ProjectConfig, log_kind: str) -> Tuple[str, str]:
    if log_kind == "deployment":
        return deployment_prompt(config)
    if log_kind == "fine_tuning":
        return fine_tuning_prompt(config)
    raise ValueError(f"Unknown log kind: {log_kind}. Available: ['deployment', 'fine_tuning']")
