__version__ = "1.0.0"
__author__ = "Wrenchd IVHC"
__description__ = "Offline caching and background sync for the Wrenchd IVHC app"
