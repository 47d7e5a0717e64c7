"""密钥服务接口模块"""
