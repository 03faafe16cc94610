"""Domain layer: data model, entity provisioning and sample decoding."""
