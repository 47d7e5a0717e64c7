"""账号应用服务：监督状态机、退避策略、凭据握手"""
