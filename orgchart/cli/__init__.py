from .main import OrgChartCli, main, summarize
