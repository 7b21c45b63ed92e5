import numpy as np
from rasterio import features
from shapely.geometry import Polygon, MultiPolygon
from errors import DimensionMismatch, EmptyCollection, InvalidConfiguration
from satelliteimg import check_same_grid


def validate_aoi(aoi):
    '''
    Checks that an area of interest is a usable polygon: not empty, at least 3 distinct
    vertices per part and not self-intersecting.

    Returns:
        The area of interest unchanged
    '''
    if not isinstance(aoi, (Polygon, MultiPolygon)):
        raise InvalidConfiguration("Area of interest must be a polygon, got " + type(aoi).__name__)
    if aoi.is_empty:
        raise InvalidConfiguration("Area of interest is empty")

    parts = aoi.geoms if isinstance(aoi, MultiPolygon) else [aoi]
    for part in parts:
        if len(set(part.exterior.coords)) < 3:
            raise InvalidConfiguration("Area of interest needs at least 3 distinct vertices")
    if not aoi.is_valid:
        raise InvalidConfiguration("Area of interest is not a valid polygon (self-intersecting?)")
    return aoi


def area_of_interest(vertices):
    '''
    Creates an area of interest polygon from a ring of (x, y) vertices. The ring is closed
    automatically if the last vertex differs from the first.
    '''
    try:
        polygon = Polygon(vertices)
    except (ValueError, TypeError) as e:
        raise InvalidConfiguration("Cannot build area of interest from " + repr(vertices)) from e
    return validate_aoi(polygon)


def aoi_mask(aoi, shape, transform):
    '''
    Rasterizes the area of interest onto a grid. A pixel is inside when its centre is.

    Returns:
        2D boolean array, True inside the area of interest
    '''
    return features.geometry_mask([aoi], out_shape=shape, transform=transform, invert=True)


def clip_to_boundary(image, aoi):
    '''
    Marks every pixel outside the area of interest as invalid.

    Returns:
        A new SatelliteImg
    '''
    return image.copy_with(valid=image.valid & aoi_mask(aoi, image.shape, image.transform))


def mosaic(images, aoi, epoch=None):
    '''
    Builds a composite from a collection of masked images ordered by acquisition date. For
    each pixel the band values are taken from the first image in which the pixel is valid.
    Pixels without any valid observation, or outside the area of interest, are invalid.

    Args:
        images: list of SatelliteImg objects on the same grid, earliest first
        aoi: area of interest polygon in the image CRS
        epoch: name of the epoch, used in error messages

    Returns:
        The composite SatelliteImg, dated with the first image of the collection
    '''
    images = list(images)
    if not images:
        raise EmptyCollection("No images to mosaic" + (" for the " + epoch + " epoch" if epoch else ""))

    first = images[0]
    check_same_grid(*images)
    for img in images[1:]:
        if img.bands != first.bands:
            raise DimensionMismatch("Image bands differ: " + str(first.bands) + " and " + str(img.bands))

    print("Building mosaic from " + str(len(images)) + " images" + (" for " + epoch if epoch else ""))

    inside = aoi_mask(aoi, first.shape, first.transform)
    composite = np.full(first.bands_data.shape, first.nodata, dtype=first.bands_data.dtype)
    filled = np.zeros(first.shape, dtype=bool)

    for img in images:
        take = img.valid & inside & ~filled
        composite[:, take] = img.bands_data[:, take]
        filled |= take

    return first.copy_with(bands_data=composite, valid=filled)
