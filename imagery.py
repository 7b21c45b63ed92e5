import os
import re
import datetime
import rasterio as rio
import geopandas as gpd
from shapely.geometry import box
import config as cfg
from errors import InvalidConfiguration
from satelliteimg import SatelliteImg, get_sensor
from mosaic import validate_aoi


def parse_date(value):
    '''
    Converts a 'YYYY-MM-DD' string (or a date) to a datetime.date
    '''
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        return datetime.datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError) as e:
        raise InvalidConfiguration("Invalid date: " + repr(value) + ". Expected YYYY-MM-DD") from e


def parse_date_range(start, end):
    '''
    Parses an observation period. The start is inclusive, the end exclusive.

    Returns:
        (start, end) as datetime.date objects
    '''
    start = parse_date(start)
    end = parse_date(end)
    if start >= end:
        raise InvalidConfiguration("Date range start " + str(start) + " must be before end " + str(end))
    return start, end


def footprint(file_path):
    '''
    Returns: the bounding box of a raster file as a shapely polygon in the raster CRS
    '''
    with rio.open(file_path) as dataset:
        return box(*dataset.bounds)


def fetch_collection(sensor_id, start, end, aoi, data_dir=cfg.data_dir):
    '''
    Takes all satellite images in the data directory acquired in the given period and
    covering the area of interest, and creates a list of SatelliteImg objects. The date is
    read from the 8 digits (YYYYMMDD) in the file name.

    Args:
        sensor_id: satellite program, selects the band mapping
        start: begin of the observation period (inclusive)
        end: end of the observation period (exclusive)
        aoi: area of interest polygon in the image CRS, None to keep every image
        data_dir: directory with the image files

    Returns:
        List of SatelliteImg objects sorted by date. May be empty
    '''
    sensor = get_sensor(sensor_id)
    start, end = parse_date_range(start, end)

    try:
        files = sorted(os.listdir(data_dir))
    except FileNotFoundError as e:
        raise InvalidConfiguration("No files found in the data directory " + str(data_dir)) from e

    images = []
    for f in files:
        if not (f.endswith('.img') or f.endswith('.tif')):
            continue

        match = re.search(r'\d{4}\d{2}\d{2}', f)
        if not match:
            continue
        try:
            date = datetime.datetime.strptime(match.group(), '%Y%m%d').date()
        except ValueError:
            print("Skipping " + f + ": " + match.group() + " is not a date")
            continue
        if not start <= date < end:
            continue

        file_path = os.path.join(data_dir, f)
        if aoi is not None and not footprint(file_path).intersects(aoi):
            print(f"No overlap found for {file_path}.")
            continue

        img = SatelliteImg(file_path, date, sensor['bands'])
        img.load_band_data()
        images.append(img)

    # Sort list of image objects by date, earliest first
    images.sort(key=lambda img: (img.date, img.file_path))
    return images


def load_seasonality(file_path):
    '''
    Loads a surface water seasonality raster (months per year with water, e.g. from the
    JRC Global Surface Water dataset) aligned to the image grid.

    Returns:
        A single band SatelliteImg
    '''
    seasonality = SatelliteImg(file_path, None, {'seasonality': 1})
    seasonality.load_band_data()
    return seasonality.copy_with(bands_data=seasonality.bands_data[:1])


def load_boundary(file_path, crs=None):
    '''
    Reads the area of interest from a vector file (e.g. a shapefile). All features are
    merged into one geometry.

    Args:
        file_path: path to the boundary file
        crs: if given, the boundary is reprojected to this CRS

    Returns:
        The area of interest as a shapely polygon
    '''
    try:
        boundary = gpd.read_file(file_path)
    except Exception as e:
        raise InvalidConfiguration("Cannot read boundary file " + str(file_path)) from e

    if boundary.empty:
        raise InvalidConfiguration("Boundary file " + str(file_path) + " contains no features")
    if crs is not None:
        boundary = boundary.to_crs(crs)

    return validate_aoi(boundary.geometry.dropna().union_all())
