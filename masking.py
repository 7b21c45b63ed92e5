from functools import partial
import numpy as np
import config as cfg
from errors import DimensionMismatch, InvalidConfiguration
from satelliteimg import SatelliteImg


class QualityFlags:
    '''
    Named boolean flag grids decoded once from an integer quality (QA) band, so that masking
    works on flags rather than on raw bit arithmetic.

    Attributes:
        flags: dict mapping a flag name (e.g. "cloud") to a 2D boolean array, True where set
    '''

    def __init__(self, flags):
        self.flags = dict(flags)

    @classmethod
    def decode(cls, qa, bit_positions):
        '''
        Decodes a quality band.

        Args:
            qa: 2D array holding the quality band. Float bands are truncated to integers
            bit_positions: dict mapping flag names to bit positions, e.g. {'cloud': 10}

        Returns:
            A QualityFlags object
        '''
        qa = np.asarray(qa)
        if not np.issubdtype(qa.dtype, np.integer):
            qa = np.nan_to_num(qa, nan=0, posinf=0, neginf=0)
        qa = qa.astype(np.int64)

        flags = {}
        for name, bit in bit_positions.items():
            flags[name] = ((qa >> bit) & 1) == 1
        return cls(flags)

    def __getitem__(self, name):
        if name not in self.flags:
            raise InvalidConfiguration("Quality flag '" + str(name) + "' was not decoded. Known flags are " +
                                       ", ".join(self.flags))
        return self.flags[name]

    def names(self):
        return list(self.flags)


def composite_masks(*masks):
    '''
    Combines validity grids with a logical AND. A pixel is valid only if it is valid in
    every grid.
    '''
    if not masks:
        raise ValueError("At least one mask is needed")

    masks = [np.asarray(m, dtype=bool) for m in masks]
    for m in masks[1:]:
        if m.shape != masks[0].shape:
            raise DimensionMismatch("Mask shapes differ: " + str(masks[0].shape) + " and " + str(m.shape))
    return np.logical_and.reduce(masks)


def clear_of(*names):
    '''
    Builds a validity predicate over QualityFlags, valid where none of the named flags is set.

    Args:
        names: flag names, e.g. "cloud", "cirrus"

    Returns:
        A function taking a QualityFlags object and returning a 2D boolean validity grid
    '''
    if not names:
        raise InvalidConfiguration("A mask policy needs at least one quality flag")

    def predicate(flags):
        return composite_masks(*[~flags[name] for name in names])

    return predicate


def qa_cloud_mask(image, policy):
    '''
    Default cloud detection: decodes the QA band of the image and marks every pixel with one
    of the policy flags (cloud, cirrus, shadow, snow...) as invalid.

    Args:
        image: a SatelliteImg with a band named "QA"
        policy: dict mapping flag names to bit positions, see config.sensors

    Returns:
        2D boolean validity grid
    '''
    flags = QualityFlags.decode(image.band('QA'), policy)
    return clear_of(*policy)(flags)


def persistent_water_mask(seasonality, threshold=cfg.water_threshold):
    '''
    Masks persistent water using a water seasonality raster.

    Args:
        seasonality: SatelliteImg or 2D array with the number of months per year with water
        threshold: pixels with seasonality at or above this value are invalid. Defaults to 10

    Returns:
        2D boolean validity grid, True where the pixel is not persistent water
    '''
    if isinstance(seasonality, SatelliteImg):
        months = seasonality.bands_data[0]
        known = seasonality.valid
    else:
        months = np.asarray(seasonality, dtype=np.float32)
        known = np.isfinite(months)

    with np.errstate(invalid='ignore'):
        water = known & (months >= threshold)
    return ~water


def mask_image(image, policy=None, seasonality=None, water_threshold=cfg.water_threshold,
               cloud_mask=None):
    '''
    Masks clouds, snow and persistent water in an image. Persistent water is applied last.

    Args:
        image: the SatelliteImg to mask. It is not modified
        policy: dict mapping quality flag names to bit positions, used with the QA band
        seasonality: optional water seasonality raster on the same grid
        water_threshold: months per year with water above which a pixel is masked
        cloud_mask: optional function taking a SatelliteImg and returning a validity grid.
            Replaces the QA band policy when given

    Returns:
        A new SatelliteImg with the combined validity grid
    '''
    print("Masking clouds and water for " + str(image.date))

    if cloud_mask is None and policy:
        cloud_mask = partial(qa_cloud_mask, policy=policy)

    masks = [image.valid]
    if cloud_mask is not None:
        masks.append(cloud_mask(image))

    if seasonality is not None:
        water = persistent_water_mask(seasonality, water_threshold)
        if water.shape != image.shape:
            raise DimensionMismatch("Seasonality raster " + str(water.shape) +
                                    " does not match image " + str(image.shape))
        masks.append(water)

    return image.copy_with(valid=composite_masks(*masks))
