import numpy as np
import matplotlib.colors
import config as cfg
from errors import InvalidConfiguration
from satelliteimg import check_same_grid


def difference(pre, post, scale=1, name='delta'):
    '''
    Takes two single band index images and calculates (pre - post) * scale

    Args:
        pre: pre fire index image, e.g. from SatelliteImg.nbr()
        post: post fire index image on the same grid
        scale: multiplier applied to the difference
        name: band name of the result

    Returns:
        A single band SatelliteImg, invalid where either input is invalid
    '''
    check_same_grid(pre, post)

    with np.errstate(invalid='ignore', over='ignore'):
        delta = (pre.bands_data[0] - post.bands_data[0]) * scale
    valid = pre.valid & post.valid & np.isfinite(delta)
    delta = np.where(valid, delta, pre.nodata).astype(np.float32)
    return pre.copy_with(bands_data=delta, bands={name: 1}, valid=valid)


def dnbr(pre_nbr, post_nbr, scale=cfg.dnbr_scale):
    '''
    Takes the pre and post fire NBR images and calculates the NBR delta, scaled to the
    USGS reporting convention (x1000 by default)

    Returns:
        dNBR for the two input images
    '''
    print("Calculating dNBR...")
    return difference(pre_nbr, post_nbr, scale, 'dNBR')


def validate_thresholds(bounds):
    '''
    Checks that the class bounds are at least two finite, strictly increasing numbers.

    Returns:
        The bounds as a float array
    '''
    try:
        values = np.asarray(bounds, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidConfiguration("Thresholds must be numbers: " + repr(bounds)) from e

    if values.ndim != 1 or values.size < 2:
        raise InvalidConfiguration("At least two thresholds are needed: " + repr(bounds))
    if values.size > 256:
        raise InvalidConfiguration("Too many thresholds for an 8-bit classification")
    if not np.all(np.isfinite(values)):
        raise InvalidConfiguration("Thresholds must be finite: " + repr(bounds))
    if np.any(np.diff(values) <= 0):
        raise InvalidConfiguration("Thresholds must be strictly increasing: " + repr(bounds))
    return values


def validate_classification(bounds=cfg.bounds, labels=cfg.labels, colors=cfg.colors):
    '''
    Checks that there is one label and one valid color per class
    '''
    bounds = validate_thresholds(bounds)
    n_classes = len(bounds) - 1
    if len(labels) != n_classes or len(colors) != n_classes:
        raise InvalidConfiguration(str(len(bounds)) + " thresholds need " + str(n_classes) +
                                   " labels and colors, got " + str(len(labels)) + " and " + str(len(colors)))
    for color in colors:
        if not matplotlib.colors.is_color_like(color):
            raise InvalidConfiguration("Not a color: " + repr(color))
    return bounds


def reclassify(img, thresholds=cfg.bounds):
    '''
    Reclassifies the image to the categories defined by threshold. A pixel with value v gets
    class i when thresholds[i] <= v < thresholds[i+1], so a value equal to a threshold falls
    into the higher class. Values below the first threshold go to the lowest class and values
    at or above the last one to the highest. Invalid pixels get the NA class,
    len(thresholds) - 1, and stay invalid.

    Args:
        img: a single band SatelliteImg, e.g. the dNBR
        thresholds: the delimiter values used for reclassification

    Returns:
        The reclassified image as a uint8 SatelliteImg with a single "severity" band
    '''
    print("Classifying burn severity...")

    bounds = validate_thresholds(thresholds)
    na_class = len(bounds) - 1

    values = img.bands_data[0].astype(np.float64)
    classes = np.searchsorted(bounds, values, side='right') - 1
    classes = np.clip(classes, 0, na_class - 1)
    classes = np.where(img.valid, classes, na_class).astype(np.uint8)

    return img.copy_with(bands_data=classes, bands={'severity': 1}, valid=img.valid, nodata=na_class)


def class_areas(classified, labels=cfg.labels):
    '''
    Calculates the area per severity class.

    Args:
        classified: the output of reclassify
        labels: list of class labels, one per class id

    Returns:
        dict mapping each label to its area in km2. Units follow the image CRS, so a
        projected (metre based) CRS is expected
    '''
    pixel_area = abs(classified.transform.a * classified.transform.e) / 1000000  # area in km2
    classes = classified.bands_data[0][classified.valid]
    counts = np.bincount(classes, minlength=len(labels))

    area = {}
    for i, label in enumerate(labels):
        area[label] = float(counts[i] * pixel_area)
    return area


def severity_colormap(colors=cfg.colors, bounds=cfg.bounds, labels=cfg.labels, na_color=cfg.na_color):
    '''
    Creates the colormap and norm for displaying a dNBR image with the severity classes.

    Returns:
        cmap: a matplotlib ListedColormap, na_color for masked values
        norm: a matplotlib BoundaryNorm for the bounds
    '''
    bounds = validate_classification(bounds, labels, colors)

    cmap = matplotlib.colors.ListedColormap(colors).with_extremes(bad=na_color, over=colors[-1], under=colors[0])
    norm = matplotlib.colors.BoundaryNorm(bounds, cmap.N)
    return cmap, norm
