"""
Browser management for the bundle fetcher
"""
import logging

from lune_nuance.core.config_models import SeleniumSettings

logger = logging.getLogger(__name__)


class BrowserManager:
    def __init__(self, settings: SeleniumSettings = None):
        self.settings = settings or SeleniumSettings()

    def create_driver(self):
        """Create Chrome driver"""
        if self.settings.use_undetected:
            import undetected_chromedriver as uc
            return self._create_undetected_driver(uc)
        from selenium import webdriver
        from selenium.webdriver.chrome.options import Options
        return self._create_regular_driver(webdriver, Options)

    def _apply_common_arguments(self, options):
        options.add_argument(f"user-agent={self.settings.user_agent}")
        for arg in self.settings.extra_args:
            options.add_argument(arg)
        if self.settings.headless:
            options.add_argument("--headless=new")
            logger.info("Creating headless browser")
        if self.settings.chrome_binary:
            options.binary_location = self.settings.chrome_binary

    def _create_undetected_driver(self, uc):
        """Create undetected Chrome driver"""
        options = uc.ChromeOptions()
        self._apply_common_arguments(options)
        driver = uc.Chrome(options=options, use_subprocess=False)
        self._configure_timeouts(driver)
        logger.info("Undetected Chrome browser created successfully")
        return driver

    def _create_regular_driver(self, webdriver, Options):
        """Create regular Selenium Chrome driver"""
        from selenium.webdriver.chrome.service import Service

        options = Options()
        self._apply_common_arguments(options)

        if self.settings.chromedriver_path:
            service = Service(self.settings.chromedriver_path)
            logger.info("Using configured ChromeDriver")
        else:
            from webdriver_manager.chrome import ChromeDriverManager
            service = Service(ChromeDriverManager().install())
            logger.info("Using ChromeDriver from webdriver-manager")

        driver = webdriver.Chrome(service=service, options=options)
        self._configure_timeouts(driver)
        return driver

    def _configure_timeouts(self, driver):
        driver.set_page_load_timeout(self.settings.page_load_timeout)
        driver.set_script_timeout(self.settings.script_timeout)
