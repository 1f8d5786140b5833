from waterlevel.generator.signal import (
    REFERENCE_EPOCH,
    cycle,
    generate,
    iter_samples,
    sample_count,
    samples_to_frame,
    water_level,
)
